"""Error kinds surfaced by swarmctl commands"""


class SwarmctlError(Exception):
    """Base class for errors reported to the user as a single line"""


class ValidationError(SwarmctlError):
    """Invalid arguments or flag values, raised before any API call"""


class TemplateError(SwarmctlError):
    """A format template could not be parsed"""

    def __init__(self, message: str):
        super().__init__(f"template parsing error: {message}")
        self.reason = message


class RenderError(SwarmctlError):
    """A parsed template failed while executing against fetched data"""


class ConfigError(SwarmctlError):
    """The CLI configuration file could not be loaded"""
