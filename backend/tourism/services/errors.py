"""
Domain errors raised by the services.
Each carries the HTTP status the API answers with.
"""


class GuideBookingError(Exception):
    """A request rejected for violating a validation or business rule."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(GuideBookingError):
    status_code = 404


class ForbiddenError(GuideBookingError):
    status_code = 403


class GuideBusyError(GuideBookingError):
    """Another request holds the guide's lease for longer than we are willing to wait."""

    status_code = 409


def describe_validation_errors(errors: list[dict]) -> str:
    """
    Flatten pydantic error dicts into one human-readable message.
    Missing fields are grouped as "Missing fields: a, b".
    """
    missing = []
    messages = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc)
        if err.get("type") == "missing":
            missing.append(field)
            continue
        msg = str(err.get("msg", "Invalid value"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        messages.append(f"{field}: {msg}" if field else msg)
    if missing:
        messages.insert(0, f"Missing fields: {', '.join(missing)}")
    return ", ".join(messages) or "Invalid request"
