"""Domain models for timeout classification.

Every structure here is owned by a single analysis run: entries are
produced once by the extraction pipeline, folded into a frequency tree,
and serialized back to flat JSON. Nothing is mutated after a run ends.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ClassificationResult:
    """Minimal classification signature of one raw log message.

    ``unprocessed`` keeps the ANSI escapes of the original lines (blank
    lines removed); ``processed`` is stripped, normalized and pruned.
    """

    unprocessed: list[str] = field(default_factory=list)
    processed: list[str] = field(default_factory=list)

    @property
    def head(self) -> str | None:
        """First processed line, conceptually the error title."""
        return self.processed[0] if self.processed else None

    @property
    def is_empty(self) -> bool:
        return not self.processed


@dataclass(frozen=True)
class TimeoutEntry:
    """One timed-out action found in a job detail record."""

    start_time: str
    workflow_id: str
    branch: str
    job_id: str
    job_name: str
    action_index: int | None
    raw_message: str
    unprocessed_classification: list[str]
    processed_classification: list[str]
    build_url: str | None = None

    @property
    def head(self) -> str | None:
        if not self.processed_classification:
            return None
        return self.processed_classification[0]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "start_time": self.start_time,
            "workflow_id": self.workflow_id,
            "branch": self.branch,
            "job_id": self.job_id,
            "job_name": self.job_name,
            "action_index": self.action_index,
            "raw_message": self.raw_message,
            "unprocessed_classification": list(self.unprocessed_classification),
            "processed_classification": list(self.processed_classification),
            "build_url": self.build_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimeoutEntry:
        """Deserialize from dictionary."""
        return cls(
            start_time=data["start_time"],
            workflow_id=data.get("workflow_id", "unknown"),
            branch=data.get("branch", "unknown"),
            job_id=data.get("job_id", ""),
            job_name=data.get("job_name", ""),
            action_index=data.get("action_index"),
            raw_message=data.get("raw_message", ""),
            unprocessed_classification=list(data.get("unprocessed_classification", [])),
            processed_classification=list(data.get("processed_classification", [])),
            build_url=data.get("build_url"),
        )


@dataclass
class TreeNode:
    """Node of the classification frequency tree.

    ``count`` is the number of entries whose classification passes through
    this node. ``children`` is None for leaves. The tree holds no parent
    references.
    """

    count: int = 0
    children: dict[str, TreeNode] | None = None
    is_test: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize as ``{count, children?, is_test?}``."""
        data: dict[str, Any] = {"count": self.count}
        if self.children:
            data["children"] = {key: child.to_dict() for key, child in self.children.items()}
        if self.is_test:
            data["is_test"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TreeNode:
        """Deserialize from dictionary."""
        children = data.get("children")
        return cls(
            count=int(data.get("count", 0)),
            children=(
                {key: cls.from_dict(child) for key, child in children.items()}
                if children
                else None
            ),
            is_test=bool(data.get("is_test", False)),
        )


@dataclass
class StatusTally:
    """Total and per-status job counts for one test-features file."""

    total: int = 0
    statuses: dict[str, int] = field(default_factory=dict)

    def add(self, status: str) -> None:
        self.total += 1
        self.statuses[status] = self.statuses.get(status, 0) + 1

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, **self.statuses}


# base filename -> tally
TestFeatureTally = dict[str, StatusTally]


@dataclass
class Workflow:
    """Workflow record from ``workflows.json``."""

    id: str
    name: str = ""
    pipeline_id: str = ""
    status: str = ""
    created_at: str = ""
    branch: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Workflow:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            pipeline_id=data.get("pipeline_id", ""),
            status=data.get("status", ""),
            created_at=data.get("created_at", ""),
            branch=data.get("branch") or None,
        )


@dataclass
class Job:
    """Job record from ``jobs.json``.

    ``job_number`` and ``name`` may be missing for jobs that never ran
    (approval jobs, blocked jobs); those have no detail record.
    """

    id: str
    job_number: int | None = None
    name: str | None = None
    status: str = ""
    started_at: str | None = None
    workflow_id: str | None = None
    branch: str | None = None

    @property
    def workflow_key(self) -> str:
        """First path segment of the composite job id."""
        return self.id.split("/")[0]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Job:
        return cls(
            id=str(data.get("id", "")),
            job_number=data.get("job_number"),
            name=data.get("name"),
            status=data.get("status", ""),
            started_at=data.get("started_at"),
            workflow_id=data.get("workflow_id"),
            branch=data.get("branch"),
        )
