import pytest

from app.core.exceptions import ValidationError
from app.utils.file_upload import get_file_extension, max_file_size_bytes, validate_resume


def test_get_file_extension():
    assert get_file_extension("CV.PDF") == ".pdf"
    assert get_file_extension("resume.final.docx") == ".docx"
    assert get_file_extension("README") == ""


@pytest.mark.parametrize("filename,content_type", [
    ("cv.pdf", "application/pdf"),
    ("cv.doc", "application/msword"),
    ("cv.docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
])
def test_validate_resume_accepts(filename, content_type):
    assert validate_resume(filename, b"%PDF-1.4 data") == content_type


@pytest.mark.parametrize("filename,content", [
    (None, b"data"),
    ("cv.txt", b"data"),
    ("cv.pdf", b""),
])
def test_validate_resume_rejects(filename, content):
    with pytest.raises(ValidationError):
        validate_resume(filename, content)


def test_validate_resume_rejects_oversized():
    with pytest.raises(ValidationError):
        validate_resume("cv.pdf", b"x" * (max_file_size_bytes() + 1))
