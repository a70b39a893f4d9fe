from .strategy import MAX_AUTH_PREAMBLE, PendingCommand, SourceProtocol, next_request_id

__all__ = ["SourceProtocol", "PendingCommand", "next_request_id", "MAX_AUTH_PREAMBLE"]
