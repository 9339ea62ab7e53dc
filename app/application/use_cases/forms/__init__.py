"""Form use cases: upload pipeline and query controller."""

from app.application.use_cases.forms.form_upload import FormUploadService
from app.application.use_cases.forms.query_controller import FormsQueryController

__all__ = [
    "FormUploadService",
    "FormsQueryController",
]
