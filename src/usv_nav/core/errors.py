"""
Error types for the USV navigation stack.

Only setup problems are raised as exceptions. Search failures are
reported as values (see navigation.global_planner.PathStatus) so the
control loop can decide whether to retry, hold position or widen the
search.
"""


class USVNavError(Exception):
    """Base class for all navigation errors."""
    pass


class ConfigurationError(USVNavError):
    """
    Fatal setup error.

    Raised before any planner runs when a required collaborator or
    configuration value is missing.

    Args:
        dependency: Name of the missing dependency (e.g. "operating_area")
        message: Optional extra detail
    """

    def __init__(self, dependency: str, message: str = ""):
        self.dependency = dependency
        text = f"missing or invalid dependency: {dependency}"
        if message:
            text = f"{text} ({message})"
        super().__init__(text)
