from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class JobResult:
    """Result object for coordinator operations."""
    success: bool
    job: Optional[Any] = None
    message: str = ""
    extra: Optional[Dict[str, Any]] = None
