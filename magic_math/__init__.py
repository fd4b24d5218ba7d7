"""Magic Math service: cached, rate-limited evaluation of the magic math recurrence."""

__version__ = "0.1.0"
