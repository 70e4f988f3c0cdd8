"""
Notification Models
Toast-style messages returned to the client by form events
"""

import logging
from typing import Literal

from pydantic import BaseModel

logger = logging.getLogger(__name__)

NotificationVariant = Literal["default", "destructive"]


class Notification(BaseModel):
    """A single user-facing message produced by a form event"""

    title: str
    description: str = ""
    variant: NotificationVariant = "default"


class NotificationTemplate(BaseModel):
    """Catalog entry whose description is a str.format template"""

    title: str
    description: str = ""
    variant: NotificationVariant = "default"

    def render(self, **values) -> Notification:
        """Fill the description placeholders and build a Notification."""
        try:
            description = self.description.format(**values)
        except (KeyError, IndexError) as e:
            logger.warning(f"Notification '{self.title}' missing placeholder value: {e}")
            description = self.description
        return Notification(title=self.title, description=description, variant=self.variant)
