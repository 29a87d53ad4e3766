from portfolio.schemas.base import CamelModel


class UploadOut(CamelModel):
    success: bool = True
    filename: str
    url: str
    size: int
    type: str
    uploaded_at: str


class ProfilePictureOut(CamelModel):
    current_picture: str | None = None
    url: str | None = None
    default_url: str
