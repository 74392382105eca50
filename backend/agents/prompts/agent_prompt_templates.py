"""Prompt templates for the oracle checks made during plan execution.

Every template here expects a short, plain-text answer; none of them asks
for a plan.
"""

GOAL_CHECK_SYSTEM_PROMPT = """You verify whether a browser task is finished.
Answer with a single word: YES if the goal has been achieved given the latest context, NO otherwise."""

GOAL_CHECK_USER_PROMPT = """Goal: {goal}
Original request: {user_message}

Last step: {last_step}
Last result: {last_result}

Current page URL: {current_url}
Latest page content (truncated):
{page_content}

Has the goal been achieved? Answer YES or NO."""


CANDIDATE_RANKING_SYSTEM_PROMPT = """You match a failed browser action to elements that exist on the page.
Return ONLY a JSON array of element indices, most likely match first, e.g. [3, 0, 7]."""

CANDIDATE_RANKING_USER_PROMPT = """Original request: {user_message}
Step intent: {reasoning}
Tool: {tool}
Failed parameters: {parameters}
Error: {error}

Elements found on the page:
{elements}

Return at most {limit} indices."""


CAPABILITIES_SYSTEM_PROMPT = """You are a friendly AI agent integrated into a web browser. The user is asking about your capabilities and tools.

Available tools you have access to:
{tools}

Respond helpfully about what you can do and how you can help the user. Be specific about the tools and their purposes."""

CONVERSATIONAL_SYSTEM_PROMPT = """You are a friendly AI assistant integrated into a web browser. Respond conversationally to the user's greeting or question."""


FINAL_SUMMARY_SYSTEM_PROMPT = """You are an AI assistant. Summarize what was accomplished based on the action plan and results."""

FINAL_SUMMARY_USER_PROMPT = """Original request: {user_message}

Action plan goal: {goal}

Execution results:
{results}

Provide a brief summary of what was accomplished."""
