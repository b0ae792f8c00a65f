"""
Result models for send and introspection calls.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from mixpanel_client.models.message import MixpanelMessage


class MessageTest(BaseModel):
    """Outcome of building a single message without sending it."""
    data: Optional[dict[str, Any]] = None
    json_text: Optional[str] = Field(default=None, alias="json")
    base64: Optional[str] = None
    error: Optional[Exception] = None

    model_config = {"arbitrary_types_allowed": True, "populate_by_name": True}

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchMessageTest(BaseModel):
    """Outcome of rendering one batch without sending it."""
    data: list[dict[str, Any]] = Field(default_factory=list)
    json_text: Optional[str] = Field(default=None, alias="json")
    base64: Optional[str] = None
    error: Optional[Exception] = None

    model_config = {"arbitrary_types_allowed": True, "populate_by_name": True}

    @property
    def ok(self) -> bool:
        return self.error is None


class SendResult(BaseModel):
    success: bool = True
    dropped_messages: int = 0
    sent_batches: list[list[MixpanelMessage]] = Field(default_factory=list)
    failed_batches: list[list[MixpanelMessage]] = Field(default_factory=list)

    def record(self, success: bool, batch: list[MixpanelMessage]) -> None:
        self.success = self.success and success
        if success:
            self.sent_batches.append(batch)
        else:
            self.failed_batches.append(batch)

    def record_dropped(self, count: int) -> None:
        """Messages that failed to build count against success without forming a batch."""
        if count:
            self.dropped_messages += count
            self.success = False
