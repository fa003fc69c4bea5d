from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Optional

IN_SYNC = "In sync"
MISSING_IN_PRODUCTION = "Missing in production"
MISSING_IN_STAGING = "Missing in staging"


class Environment(str, Enum):
    PRODUCTION = "production"
    STAGING = "staging"

    @property
    def opposite(self) -> "Environment":
        return Environment.STAGING if self is Environment.PRODUCTION else Environment.PRODUCTION

    @property
    def id_field(self) -> str:
        return f"{self.value}_id"


class EntityType(str, Enum):
    COLLECTIONS = "collections"
    PRODUCTS = "products"
    PAGES = "pages"
    FILES = "files"


@dataclass(frozen=True)
class ComparisonRecord:
    """Persisted cross-environment state of one entity, keyed by handle or filename."""

    key: str
    production_id: Optional[str]
    staging_id: Optional[str]
    title: str
    differences: str
    updated_at: str
    compared_at: str = ""
    url: Optional[str] = None

    def __post_init__(self):
        if not (self.production_id or self.staging_id):
            raise ValueError(f"Record {self.key!r} has no id in either environment")

    def id_for(self, environment: Environment) -> Optional[str]:
        return getattr(self, environment.id_field)

    def with_id(self, environment: Environment, entity_id: Optional[str]) -> "ComparisonRecord":
        return replace(self, **{environment.id_field: entity_id})

    @property
    def in_sync(self) -> bool:
        return self.differences == IN_SYNC

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class MutationResult:
    id: Optional[str]
    user_errors: list = field(default_factory=list)


@dataclass(frozen=True)
class Progress:
    current: int
    total: int


@dataclass
class CompareResult:
    records: list = field(default_factory=list)
    failed: dict = field(default_factory=dict)   # key -> message, rows left untouched

    def to_dict(self) -> dict:
        return {"compared": len(self.records), "failed": dict(self.failed)}


@dataclass
class SyncResult:
    total: int = 0
    synced: list = field(default_factory=list)
    failed: dict = field(default_factory=dict)   # key -> message

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        text = f"{len(self.synced)} of {self.total} synced"
        if self.failed:
            detail = "; ".join(f"{k}: {v}" for k, v in self.failed.items())
            text += f", {len(self.failed)} failed: {detail}"
        return text

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "synced": list(self.synced),
            "failed": dict(self.failed),
            "summary": self.summary(),
        }
