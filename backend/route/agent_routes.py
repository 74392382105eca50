# status: complete

import threading
import uuid
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from flask import Flask, jsonify, request

from utils.confirmation_manager import ConfirmationManager, confirmation_manager
from utils.logger import get_logger

logger = get_logger(__name__)


class AgentEventBuffer:
    """
    Listener for AgentEventEmitter that queues events per message id
    until a client drains them.
    """

    def __init__(self, max_events: int = 1000):
        self._queues: Dict[str, Deque[Dict[str, Any]]] = {}
        self._finished: set = set()
        self._max_events = max_events
        self._lock = threading.Lock()

    def __call__(self, message_id: str, event_type: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            queue = self._queues.setdefault(message_id, deque(maxlen=self._max_events))
            queue.append({'event': event_type, 'data': payload})
            if event_type == 'final_response':
                self._finished.add(message_id)

    def drain(self, message_id: str) -> Tuple[List[Dict[str, Any]], bool]:
        """Return queued events and whether the request has finished.

        Once the final response has been handed out the request's queue is dropped.
        """
        with self._lock:
            finished = message_id in self._finished
            if finished:
                self._finished.discard(message_id)
                queue = self._queues.pop(message_id, None)
            else:
                queue = self._queues.get(message_id)
            if not queue:
                return [], finished
            events = list(queue)
            queue.clear()
            return events, finished

    def is_finished(self, message_id: str) -> bool:
        with self._lock:
            return message_id in self._finished

    def discard(self, message_id: str) -> None:
        with self._lock:
            self._queues.pop(message_id, None)
            self._finished.discard(message_id)


def register_agent_routes(app: Flask, executor, registry, event_buffer: AgentEventBuffer,
                          confirmations: Optional[ConfirmationManager] = None,
                          run_in_thread: Optional[Callable[[Callable[[], Any]], None]] = None):
    """Register agent request, event polling and confirmation routes"""
    confirmations = confirmations or confirmation_manager

    def _start_background(target: Callable[[], Any]) -> None:
        thread = threading.Thread(target=target, daemon=True)
        thread.start()

    start = run_in_thread or _start_background

    @app.route('/api/agent/request', methods=['POST'])
    def submit_agent_request():
        """Start processing a user message; progress is polled from the events route"""
        data = request.get_json(silent=True) or {}
        message = (data.get('message') or '').strip()
        if not message:
            return jsonify({'success': False, 'error': 'message is required'}), 400

        message_id = data.get('messageId') or f"msg_{uuid.uuid4().hex[:12]}"
        event_buffer.discard(message_id)

        def run():
            try:
                executor.process_request(message, message_id)
            except Exception as e:
                logger.error(f"[EXECUTOR] Request {message_id} crashed: {e}")

        start(run)
        logger.info(f"Agent request {message_id} accepted")
        return jsonify({'success': True, 'messageId': message_id}), 202

    @app.route('/api/agent/events/<message_id>', methods=['GET'])
    def get_agent_events(message_id):
        """Drain queued events for a request"""
        events, done = event_buffer.drain(message_id)
        return jsonify({
            'success': True,
            'messageId': message_id,
            'events': events,
            'done': done
        })

    @app.route('/api/agent/confirmation', methods=['POST'])
    def respond_to_confirmation():
        """Resolve a pending confirmation prompt"""
        data = request.get_json(silent=True) or {}
        request_id = data.get('id')
        if not request_id:
            return jsonify({'success': False, 'error': 'id is required'}), 400

        response = {
            'confirmed': bool(data.get('confirmed', False)),
            'cancelled': bool(data.get('cancelled', False))
        }
        if not confirmations.resolve(request_id, response):
            return jsonify({'success': False, 'error': f'No pending confirmation {request_id}'}), 404
        logger.info(f"[CONFIRM] {request_id} answered: confirmed={response['confirmed']}")
        return jsonify({'success': True})

    @app.route('/api/agent/guidance', methods=['POST'])
    def respond_to_guidance():
        """Resolve a pending element-guidance prompt with a selector"""
        data = request.get_json(silent=True) or {}
        request_id = data.get('id')
        if not request_id:
            return jsonify({'success': False, 'error': 'id is required'}), 400

        cancelled = bool(data.get('cancelled', False))
        selector = data.get('selector')
        if not cancelled and not selector:
            return jsonify({'success': False, 'error': 'selector is required unless cancelled'}), 400

        if not confirmations.resolve(request_id, {'selector': selector, 'cancelled': cancelled}):
            return jsonify({'success': False, 'error': f'No pending guidance request {request_id}'}), 404
        logger.info(f"[CONFIRM] Guidance {request_id} answered")
        return jsonify({'success': True})

    @app.route('/api/agent/tools', methods=['GET'])
    def list_agent_tools():
        """Describe every registered tool"""
        try:
            return jsonify({'success': True, 'tools': registry.get_schemas()})
        except Exception as e:
            logger.error(f"Error listing agent tools: {e}")
            return jsonify({'success': False, 'error': str(e)}), 500

    logger.info("Agent routes registered successfully")
