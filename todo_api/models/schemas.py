from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class TodoItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID | None = None
    due_date: datetime | None = Field(default=None, alias="dueDate")
    text: str = ""
    done: bool = False
