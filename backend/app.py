# status: complete

from flask import Flask, jsonify
from flask_cors import CORS
import os
import sys

backend_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.append(backend_dir)

from route.agent_routes import AgentEventBuffer, register_agent_routes
from agents.events.events import AgentEventEmitter
from agents.execution.executor import AgentExecutor
from agents.services.long_term_memory import LongTermMemory
from agents.tools.builtin import create_default_registry
from chat.chat import Chat
from utils.config import Config
from utils.confirmation_manager import confirmation_manager
from utils.logger import get_logger

logger = get_logger(__name__)


def create_app(actuator=None, oracle=None, workspace_root=None, executor_factory=None):
    """
    Create and configure the Flask application.

    The browser actuator is supplied by the host; without one only the file
    tools can do useful work.
    """
    app = Flask(__name__)

    cors_origins = os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',')
    CORS(app, origins=[origin.strip() for origin in cors_origins])

    registry = create_default_registry(workspace_root or os.getenv('AGENT_WORKSPACE_ROOT'))
    emitter = AgentEventEmitter()
    event_buffer = AgentEventBuffer()
    emitter.subscribe(event_buffer)

    oracle = oracle or Chat()
    factory = executor_factory or AgentExecutor
    executor = factory(
        registry=registry,
        oracle=oracle,
        actuator=actuator,
        events=emitter,
        confirmations=confirmation_manager,
        limits=Config.get_execution_limits(),
        memory=LongTermMemory(),
    )

    register_agent_routes(app, executor, registry, event_buffer, confirmation_manager)

    if actuator is None:
        logger.warning("No browser actuator configured; browser tools will fail until one is supplied")

    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'message': 'Agent backend is running',
            'default_provider': Config.get_default_provider(),
            'default_model': Config.get_default_model(),
            'llm_configured': oracle.is_configured()
        })

    @app.route('/api')
    def api_info():
        return jsonify({
            'name': 'Browser Agent API',
            'version': '1.0.0',
            'endpoints': {
                'agent': {
                    'request': '/api/agent/request',
                    'events': '/api/agent/events/<message_id>',
                    'confirmation': '/api/agent/confirmation',
                    'guidance': '/api/agent/guidance',
                    'tools': '/api/agent/tools'
                }
            }
        })

    return app


if __name__ == '__main__':
    app = create_app()
    port = int(os.getenv('PORT', '5000'))
    logger.info(f"Starting agent backend on port {port}")
    app.run(host='127.0.0.1', port=port, debug=os.getenv('FLASK_DEBUG') == '1')
