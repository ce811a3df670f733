import pytest
from io import BytesIO

import docx
from openpyxl import Workbook
from flask_jwt_extended import create_access_token

from app import create_app

SPREADSHEET_HEADER = [
    'Question', 'Option A', 'Option B', 'Option C', 'Option D', 'Correct', 'Marks', 'Negative Marks'
]


# Common test fixtures
@pytest.fixture
def app():
    """Flask app on the testing config (no MongoDB connection)."""
    return create_app('testing')


@pytest.fixture
def client(app):
    return app.test_client()


def _bearer(app, role):
    with app.app_context():
        token = create_access_token(
            identity='user-1',
            additional_claims={'role': role, 'name': 'Test User', 'email': 'test@example.edu'}
        )
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def auth_headers(app):
    """Headers for a faculty member."""
    return _bearer(app, 'faculty')


@pytest.fixture
def student_headers(app):
    return _bearer(app, 'student')


@pytest.fixture
def make_workbook():
    """Build .xlsx bytes from data rows (header row added automatically)."""
    def _make(rows, header=SPREADSHEET_HEADER):
        workbook = Workbook()
        sheet = workbook.active
        if header is not None:
            sheet.append(header)
        for row in rows:
            sheet.append(row)
        buffer = BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()
    return _make


@pytest.fixture
def make_docx():
    """Build .docx bytes with one paragraph per line."""
    def _make(lines):
        document = docx.Document()
        for line in lines:
            document.add_paragraph(line)
        buffer = BytesIO()
        document.save(buffer)
        return buffer.getvalue()
    return _make
