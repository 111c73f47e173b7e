"""Error taxonomy shared by the gateway and the quest client core."""

from __future__ import annotations


class WayfarerError(Exception):
    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail


class GatewayError(WayfarerError):
    """Raised by an RPC gateway call."""


class NetworkError(GatewayError):
    def __init__(self, detail: str = "No response from the game server.") -> None:
        super().__init__(detail)


class AuthError(GatewayError):
    def __init__(self, detail: str = "Session is invalid or expired.") -> None:
        super().__init__(detail)


class ServerError(GatewayError):
    def __init__(self, detail: str = "RPC call failed.", status_code: int | None = None) -> None:
        super().__init__(detail)
        self.status_code = status_code


class LocationRequired(WayfarerError):
    def __init__(self, detail: str = "A location fix is required to complete a step.") -> None:
        super().__init__(detail)


class InvalidLocation(WayfarerError):
    pass


class QuestNotFound(WayfarerError):
    def __init__(self, quest_id: str) -> None:
        super().__init__(f"Quest '{quest_id}' not found.")
        self.quest_id = quest_id


class StepCompletionFailed(WayfarerError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class StartFailed(WayfarerError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class FinalizationFailed(WayfarerError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidSessionState(WayfarerError):
    pass
