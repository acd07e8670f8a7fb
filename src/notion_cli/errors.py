"""Error types shared by the client, the translators and the CLI."""


class NotionCLIError(Exception):
    """Base error with code, message and an optional actionable hint."""

    code = "ERROR"

    def __init__(self, message: str, *, code: str | None = None, status_code: int = 0, hint: str | None = None):
        self.code = code or self.code
        self.message = message
        self.status_code = status_code
        self.hint = hint
        super().__init__(message)


class UnknownProperty(NotionCLIError):
    """A filter or assignment names a property absent from the schema."""

    code = "UNKNOWN_PROPERTY"

    def __init__(self, name: str, where: str = "database schema"):
        self.name = name
        super().__init__(f"property {name!r} not found in {where}")


class NoOperatorFound(NotionCLIError):
    code = "NO_OPERATOR"

    def __init__(self, expression: str):
        self.expression = expression
        super().__init__(f"no valid operator found in expression {expression!r}")


class InvalidPropertyFormat(NotionCLIError):
    code = "INVALID_PROPERTY_FORMAT"

    def __init__(self, argument: str):
        self.argument = argument
        super().__init__(f"invalid property format {argument!r}, expected key=value")


class RemoteAPIError(NotionCLIError):
    """Error body returned by the Notion API."""

    code = "API_ERROR"


class TransportError(NotionCLIError):
    """Network failure or timeout before a response arrived."""

    code = "NETWORK"


class LocalIOError(NotionCLIError):
    code = "IO"


class UsageError(NotionCLIError):
    code = "USAGE"


def error_hint(code: str, message: str = "") -> str | None:
    """Return an actionable suggestion for a Notion API error code."""
    if code == "object_not_found":
        return "Check the ID is correct and the page/database is shared with your integration"
    if code == "unauthorized":
        return "Run 'notion auth login' to authenticate, or check your token"
    if code == "restricted_resource":
        return "Your integration doesn't have access. Share the page/database with your integration in Notion"
    if code == "rate_limited":
        return "Too many requests. Wait a moment and try again"
    if code == "validation_error":
        if "is not a property" in message:
            return "Check property names with 'notion db view <id>' or 'notion page props <id>'"
        if "body failed validation" in message:
            return "Check your input format. Use --debug for request details"
        return None
    if code == "conflict_error":
        return "The resource was modified by another process. Retry the operation"
    if code in {"internal_server_error", "service_unavailable"}:
        return "Notion's servers are having issues. Try again in a few minutes"
    return None
