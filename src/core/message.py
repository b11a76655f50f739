"""
Define Message structure to ensure consinstency in the system
"""

import time
import uuid

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """
    A relayed chat entry.
    The payload is ciphertext produced by the client and is never inspected.
    """

    model_config = ConfigDict(frozen=True)

    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    payload: str
    sender: str
    created_at: float = Field(default_factory=time.time)
