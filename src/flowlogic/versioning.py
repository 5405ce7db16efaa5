"""
Draft / publish model for a flow.

The draft is freely editable. `publish()` freezes a deep copy of the draft as the
next version; snapshots are never modified afterwards and every read hands out a
copy, so editing the draft (or a returned Flow) cannot leak into published content.
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from flowlogic.diff import compare_flow_versions
from flowlogic.errors import FlowArchivedError, FlowNotPublishedError
from flowlogic.schemas.flow import Flow, FlowNode, FlowSettings, FlowStatus

_DRAFT_FIELDS = {"title", "description", "nodes", "settings", "theme"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FlowContent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    nodes: List[FlowNode] = Field(default_factory=list)
    settings: FlowSettings = Field(default_factory=FlowSettings)
    theme: Dict[str, Any] = Field(default_factory=dict)


class PublishedSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: int
    title: str = ""
    description: Optional[str] = None
    content: FlowContent
    published_at: datetime = Field(alias="publishedAt")


class VersionedFlow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = ""
    description: Optional[str] = None
    status: FlowStatus = "draft"
    version: int = 0
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=_utcnow, alias="updatedAt")
    published_at: Optional[datetime] = Field(default=None, alias="publishedAt")
    draft: FlowContent = Field(default_factory=FlowContent)
    published: Dict[int, PublishedSnapshot] = Field(default_factory=dict)

    @classmethod
    def create(
        cls,
        flow_id: str,
        title: str = "",
        description: Optional[str] = None,
        *,
        nodes: Optional[List[Any]] = None,
        settings: Optional[Dict[str, Any]] = None,
        theme: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> "VersionedFlow":
        ts = now or _utcnow()
        content = FlowContent.model_validate({"nodes": nodes or [], "settings": settings or {}, "theme": theme or {}})
        return cls(id=flow_id, title=title, description=description, draft=content, created_at=ts, updated_at=ts)

    @classmethod
    def from_flow(cls, flow: Flow, *, now: Optional[datetime] = None) -> "VersionedFlow":
        """Start version history from an existing flow document; its content becomes the draft."""
        ts = now or _utcnow()
        content = FlowContent(
            nodes=[n.model_copy(deep=True) for n in flow.nodes],
            settings=flow.settings.model_copy(deep=True),
            theme=copy.deepcopy(flow.theme),
        )
        return cls(
            id=flow.id,
            title=flow.title,
            description=flow.description,
            draft=content,
            created_at=flow.created_at or ts,
            updated_at=flow.updated_at or ts,
        )

    # -- draft --------------------------------------------------------------

    def _ensure_active(self) -> None:
        if self.status == "archived":
            raise FlowArchivedError(self.id)

    def update_draft(self, *, now: Optional[datetime] = None, **changes: Any) -> "VersionedFlow":
        """Partial update; only the keys given change. Published snapshots are untouched."""
        self._ensure_active()
        unknown = set(changes) - _DRAFT_FIELDS
        if unknown:
            raise ValueError(f"Unknown draft field(s): {', '.join(sorted(unknown))}")

        if "title" in changes:
            self.title = str(changes["title"] or "")
        if "description" in changes:
            self.description = changes["description"]
        content_changes = {k: v for k, v in changes.items() if k in ("nodes", "settings", "theme")}
        if content_changes:
            merged = self.draft.model_dump(by_alias=True)
            merged.update({k: (v if v is not None else ([] if k == "nodes" else {})) for k, v in content_changes.items()})
            self.draft = FlowContent.model_validate(merged)
        self.updated_at = now or _utcnow()
        return self

    def draft_flow(self) -> Flow:
        return self._as_flow(self.title, self.description, self.draft)

    # -- publish ------------------------------------------------------------

    def publish(self, *, now: Optional[datetime] = None) -> PublishedSnapshot:
        self._ensure_active()
        ts = now or _utcnow()
        next_version = self.version + 1
        snapshot = PublishedSnapshot(
            version=next_version,
            title=self.title,
            description=self.description,
            content=self.draft.model_copy(deep=True),
            published_at=ts,
        )
        self.published[next_version] = snapshot
        self.version = next_version
        self.status = "published"
        self.published_at = ts
        self.updated_at = ts
        return snapshot.model_copy(deep=True)

    def snapshot(self, version: Optional[int] = None) -> PublishedSnapshot:
        if not self.published:
            raise FlowNotPublishedError(self.id)
        key = self.version if version is None else int(version)
        snap = self.published.get(key)
        if snap is None:
            raise FlowNotPublishedError(self.id, version=key)
        return snap.model_copy(deep=True)

    def published_flow(self, version: Optional[int] = None) -> Flow:
        snap = self.snapshot(version)
        flow = self._as_flow(snap.title, snap.description, snap.content)
        flow.version = snap.version
        flow.status = "published"
        flow.published_at = snap.published_at
        return flow

    @property
    def published_versions(self) -> List[int]:
        return sorted(self.published)

    def has_unpublished_changes(self) -> bool:
        published = self.published_flow() if self.published else None
        if published is not None and (self.title != published.title):
            return True
        return compare_flow_versions(self.draft_flow(), published).has_differences

    def archive(self, *, now: Optional[datetime] = None) -> "VersionedFlow":
        self.status = "archived"
        self.updated_at = now or _utcnow()
        return self

    # -- helpers ------------------------------------------------------------

    def _as_flow(self, title: str, description: Optional[str], content: FlowContent) -> Flow:
        return Flow(
            id=self.id,
            title=title,
            description=description,
            nodes=[n.model_copy(deep=True) for n in content.nodes],
            settings=content.settings.model_copy(deep=True),
            theme=copy.deepcopy(content.theme),
            status=self.status,
            version=self.version,
            created_at=self.created_at,
            updated_at=self.updated_at,
            published_at=self.published_at,
        )


__all__ = ["FlowContent", "PublishedSnapshot", "VersionedFlow"]
