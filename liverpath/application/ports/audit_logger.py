from typing import Optional, Dict, Any, Protocol


class AuditLogger(Protocol):
    def log(self, action: str, email: str, success: bool = True, session_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        ...
