# webdav_gateway/file_access/base_fs.py
"""
Result types shared by the WebDAV resolver, provisioner and transfer executors.

Nothing here outlives a single gateway request.
"""
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass
class ProbeRecord:
    """One probe request made while looking for a working endpoint."""
    url: str
    method: str
    status: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class ResolvedEndpoint:
    """The candidate root that accepted WebDAV verbs, plus how we got there."""
    url: str
    probe_log: List[ProbeRecord] = field(default_factory=list)
    from_cache: bool = False


@dataclass
class ProvisionStep:
    """Outcome of one MKCOL.

    outcome is one of "created", "exists" or "warning".
    """
    url: str
    outcome: str
    status: Optional[int] = None
    error: Optional[str] = None


@dataclass
class ProvisionResult:
    collection_url: str
    steps: List[ProvisionStep] = field(default_factory=list)

    @property
    def warnings(self) -> List[ProvisionStep]:
        return [s for s in self.steps if s.outcome == "warning"]


@dataclass
class UploadResult:
    url: str
    status: int
    attempts: int


@dataclass
class DownloadResult:
    url: str
    content: str
    content_type: str
    size: int


@dataclass
class HealthCheckResult:
    """Result of a health check."""
    healthy: bool
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    protocol: Optional[str] = "webdav"
    latency_ms: Optional[float] = None
