"""
Subscription Record

The single entity tracked by the service: who subscribed to what, for how
much, and for which validity window.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class Record:
    """
    A user's subscription to a service.

    ``id`` is assigned by the store on save and never changes afterwards.
    ``created_at`` may be left empty; the service fills it with the
    operation's timestamp before persisting.
    """
    service_name: str
    price: int
    user_id: str
    expires_at: datetime
    created_at: Optional[datetime] = None
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "service_name": self.service_name,
            "price": self.price,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "expires_at": self.expires_at.isoformat(),
        }
