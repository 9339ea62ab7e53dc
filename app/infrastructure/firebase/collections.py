"""Collection names and the camelCase field names of form documents.

Firestore creates collections on first write; these constants are the
only record of the layout.
"""

COLLECTION_FORMS = "forms"
COLLECTION_USER_ACTIVITY = "userActivity"
COLLECTION_FORM_ANALYTICS = "formAnalytics"

# FormRecord attribute -> stored field
FORM_FIELD_NAMES: dict[str, str] = {
    "title": "title",
    "description": "description",
    "form_number": "formNumber",
    "category": "category",
    "line_of_business": "lineOfBusiness",
    "tags": "tags",
    "state_applicability": "stateApplicability",
    "edition_date": "editionDate",
    "effective_date": "effectiveDate",
    "expiration_date": "expirationDate",
    "version": "version",
    "is_active": "isActive",
    "is_deleted": "isDeleted",
    "file_url": "fileUrl",
    "file_size": "fileSize",
    "created_by": "createdBy",
    "uploaded_by": "uploadedBy",
    "modified_by": "modifiedBy",
    "created_at": "createdAt",
    "uploaded_at": "uploadedAt",
    "updated_at": "updatedAt",
    "last_modified": "lastModified",
    "view_count": "viewCount",
    "download_count": "downloadCount",
    "search_keywords": "searchKeywords",
    "deleted_at": "deletedAt",
    "deleted_by": "deletedBy",
}


def analytics_document_id(form_id: str, day: str) -> str:
    """Per-form, per-day analytics key: ``{formId}_{YYYY-MM-DD}``."""
    return f"{form_id}_{day}"
