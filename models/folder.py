import uuid

from pydantic import BaseModel, Field

# Pseudo-folder used by queue filters to select cards without a folder
NO_FOLDER_ID = "00000000-0000-0000-0000-000000000000"


class FolderBase(BaseModel):
    name: str

class FolderCreate(FolderBase):
    pass

class Folder(FolderBase):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))

    class Config:
        from_attributes = True
