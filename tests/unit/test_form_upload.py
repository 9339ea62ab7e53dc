"""Tests for the upload pipeline (validation, transfer, linking the record)."""

import io

import pytest

from app.application.dtos.upload import FormFile, UploadProgress
from app.application.services.upload_transfer import TransferControl
from app.application.use_cases.forms import FormUploadService
from app.application.use_cases.forms.form_upload import (
    generate_file_name,
    validate_form_file,
)
from app.domain.enums import UploadState
from app.domain.exceptions import UploadCancelledException, ValidationException
from app.infrastructure.firebase.collections import COLLECTION_FORMS
from tests.fakes import TEST_USER_ID, make_form

PDF_BYTES = b"%PDF-1.7\n" + b"0" * (600 * 1024)


def _pdf(data: bytes = PDF_BYTES, *, size: int | None = None, **kwargs) -> FormFile:
    values = dict(
        filename="CGL Application.pdf",
        content_type="application/pdf",
        size=len(data) if size is None else size,
        data=io.BytesIO(data),
    )
    values.update(kwargs)
    return FormFile(**values)


@pytest.fixture
def service(local_storage, repo, clock) -> FormUploadService:
    return FormUploadService(local_storage, repo, clock=clock)


async def test_upload_links_file_to_record(service, repo) -> None:
    events: list[UploadProgress] = []

    form_id = await service.upload_form(
        _pdf(), make_form(), TEST_USER_ID, on_progress=events.append
    )

    record = await repo.get_form(form_id)
    assert record is not None
    assert record.file_size == len(PDF_BYTES)
    assert record.file_url.startswith(f"/api/v1/storage/forms/{form_id}/CGL_Application_v2024.1_")
    assert events[-1].state is UploadState.SUCCESS
    assert events[-1].bytes_transferred == len(PDF_BYTES)
    assert all(e.state is UploadState.RUNNING for e in events[:-1])


async def test_oversized_file_rejected_before_any_store_call(service, store) -> None:
    too_big = _pdf(b"%PDF", size=60 * 1024 * 1024)

    with pytest.raises(ValidationException, match="less than 50MB"):
        await service.upload_form(too_big, make_form(), TEST_USER_ID)

    assert store.calls == []


async def test_non_pdf_rejected_with_distinct_message(service, store) -> None:
    with pytest.raises(ValidationException) as exc_info:
        await service.upload_form(
            _pdf(content_type="image/png"), make_form(), TEST_USER_ID
        )

    assert exc_info.value.message == "Only PDF files are allowed"
    assert store.calls == []


async def test_invalid_metadata_rejected_before_any_store_call(service, store) -> None:
    with pytest.raises(ValidationException):
        await service.upload_form(_pdf(), make_form(title="  "), TEST_USER_ID)
    assert store.calls == []


async def test_cancel_leaves_record_without_file(service, store, local_storage) -> None:
    control = TransferControl()

    def on_progress(progress: UploadProgress) -> None:
        if progress.state is UploadState.RUNNING:
            control.cancel()

    with pytest.raises(UploadCancelledException):
        await service.upload_form(
            _pdf(), make_form(), TEST_USER_ID, on_progress=on_progress, control=control
        )

    [doc] = store.data[COLLECTION_FORMS].values()
    assert "fileUrl" not in doc
    assert not list(local_storage.storage_root.rglob("*.pdf"))


def test_validate_form_file_rules() -> None:
    validate_form_file(_pdf(content_type="application/pdf; charset=binary"))
    with pytest.raises(ValidationException, match="valid name"):
        validate_form_file(_pdf(filename="   "))
    with pytest.raises(ValidationException, match="empty"):
        validate_form_file(_pdf(b"", size=0))


@pytest.mark.parametrize(
    ("original", "version", "expected"),
    [
        ("CGL Application.pdf", "2024.1", "CGL_Application_v2024.1_1740830400000.pdf"),
        ("../../etc/passwd", "1.0", "passwd_v1.0_1740830400000.pdf"),
        ("scan", "1.0", "scan_v1.0_1740830400000.pdf"),
        (".pdf", "v 2/3", "file_vv_2_3_1740830400000.pdf"),
    ],
)
def test_generate_file_name(clock, original, version, expected) -> None:
    assert generate_file_name(original, version, clock()) == expected
