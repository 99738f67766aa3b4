"""Errors raised while reading or writing install links.

Links arrive from outside the app, so parse errors stay inside the codec and
surface as None. A link that cannot be generated is a caller bug and is raised.
"""


class ProtocolError(Exception):
    """An install link could not be read or written.

    `context` names what was wrong with the link: the plugin `id`, the schema
    `identifier`, an unknown `scheme` or `source`, the rejected route or
    parameter keys. str() shows the message followed by those entries, which
    is the form the codec logs.
    """

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message)
        self.message = message
        self.context = dict(context) if context else {}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value!r}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class ProtocolParseError(ProtocolError):
    """The link is malformed, unroutable or carries an invalid plugin schema."""


class ProtocolGenerateError(ProtocolError):
    """The install request cannot be written as a link.

    Raised when schema.identifier differs from the id, or a meta parameter
    name is empty.
    """
