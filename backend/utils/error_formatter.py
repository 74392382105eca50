# status: complete

"""
Error formatting utilities for user-visible failure narration.
"""


class ErrorFormatter:
    """
    Formats error messages consistently across the planner, executor and routes.
    """

    @staticmethod
    def format_error_message(error: Exception, context: str = "Operation", include_type: bool = True) -> str:
        """
        Format an exception into a user-friendly error message.

        Args:
            error: The exception to format
            context: Context string describing what operation failed
            include_type: Whether to include the exception type in the message
        """
        error_str = str(error)
        error_type = type(error).__name__

        if include_type and error_type not in ("RuntimeError", "PlanGenerationError"):
            return f"{context} failed: [{error_type}] {error_str}"
        return f"{context} failed: {error_str}"

