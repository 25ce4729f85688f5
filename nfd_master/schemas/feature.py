from typing import Dict

from pydantic import BaseModel, Field


class SetLabelsRequest(BaseModel):
    """Feature report sent by a worker once per labeling cycle."""
    node_name: str
    nfd_version: str = ""
    labels: Dict[str, str] = Field(default_factory=dict)


class SetLabelsReply(BaseModel):
    pass
