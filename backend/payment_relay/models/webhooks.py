"""
Pydantic Webhook Models

Processor notifications accepted on POST /webhook.
"""
from typing import Optional
from pydantic import BaseModel, Field


STATUS_UPDATED = "status_updated"


class WebhookEvent(BaseModel):
    """
    Verified processor notification.

    Only event_name is required; unknown fields sent by the processor
    are kept so reconciliation can inspect them.
    """
    event_name: str = Field(min_length=1)
    payment_reference: Optional[str] = None
    order_reference: Optional[str] = None
    payment_state: Optional[str] = None

    model_config = {"extra": "allow"}

    @property
    def is_status_update(self) -> bool:
        return self.event_name == STATUS_UPDATED
