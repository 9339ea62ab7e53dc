"""Form workflows: the upload pipeline and the list/search controller."""

from app.application.use_cases.forms import FormsQueryController, FormUploadService

__all__ = ["FormUploadService", "FormsQueryController"]
