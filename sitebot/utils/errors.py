"""Errors raised by the third-party service wrappers."""


class UpstreamServiceError(Exception):
    """A hosted dependency (OpenAI, Pinecone, Stripe, GitHub, a scraped site) failed."""

    service = "upstream"
    status_code = 502

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
