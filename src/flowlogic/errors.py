"""
Exceptions raised by the stateful layers (versioning, render session, CLI loading).

The evaluation engine itself never raises; bad references degrade to defaults.
"""

from __future__ import annotations


class FlowLogicError(Exception):
    """Base class for flowlogic errors."""


class FlowNotPublishedError(FlowLogicError):
    def __init__(self, flow_id: str, version: object = None) -> None:
        self.flow_id = flow_id
        self.version = version
        if version is None:
            msg = f"Flow {flow_id!r} has not been published"
        else:
            msg = f"Flow {flow_id!r} has no published version {version!r}"
        super().__init__(msg)


class FlowArchivedError(FlowLogicError):
    def __init__(self, flow_id: str) -> None:
        self.flow_id = flow_id
        super().__init__(f"Flow {flow_id!r} is archived")


class FormSessionError(FlowLogicError):
    """Navigation attempted on a session that can no longer move."""


class FlowLoadError(FlowLogicError):
    """Input could not be read as a flow document."""


__all__ = [
    "FlowLogicError",
    "FlowNotPublishedError",
    "FlowArchivedError",
    "FormSessionError",
    "FlowLoadError",
]
