"""
Upload forms (multipart) for the JSON API.

Boundary filtering for files happens here, before the lifecycle engine
sees them:
- quote original / correction files: images, PDF, Word, CAD; max 10MB
- technical drawings: images, PDF, CAD; max 20MB

CSRF is disabled: the API authenticates with bearer tokens, not cookies.
"""

from __future__ import annotations

from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField, FileRequired, FileSize
from wtforms import StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Optional

from .errors import ValidationError
from .models import KNIFE_TYPES, MATERIAL_TYPES, SUPPLIER_TYPES
from .storage import IncomingFile

MB = 1024 * 1024

QUOTE_FILE_EXTENSIONS = ["jpg", "jpeg", "png", "pdf", "doc", "docx", "dwg", "dxf"]
QUOTE_FILE_MAX_BYTES = 10 * MB

DRAWING_FILE_EXTENSIONS = ["jpg", "jpeg", "png", "pdf", "dwg", "dxf"]
DRAWING_FILE_MAX_BYTES = 20 * MB


class ApiForm(FlaskForm):
    class Meta:
        csrf = False

    def validated(self) -> "ApiForm":
        """Validate or raise ValidationError with the first message."""
        if not self.validate():
            for errors in self.errors.values():
                if errors:
                    raise ValidationError(str(errors[0]))
            raise ValidationError("Invalid request")
        return self

    @staticmethod
    def incoming(field) -> IncomingFile | None:
        return IncomingFile.from_storage(field.data) if field.data else None


def _quote_file_validators(required_message: str):
    return [
        FileRequired(required_message),
        FileAllowed(QUOTE_FILE_EXTENSIONS, "Only images, PDFs, and document files are allowed"),
        FileSize(max_size=QUOTE_FILE_MAX_BYTES, message="File exceeds the 10MB limit"),
    ]


class QuoteForm(ApiForm):
    name = StringField(validators=[DataRequired("Name is required")])
    supplier_type = StringField(
        validators=[DataRequired("Supplier type is required"), AnyOf(SUPPLIER_TYPES, "Invalid supplier type")]
    )
    material_type = StringField(validators=[Optional(), AnyOf(MATERIAL_TYPES, "Invalid material type")])
    knife_type = StringField(validators=[Optional(), AnyOf(KNIFE_TYPES, "Invalid knife type")])
    observations = TextAreaField()
    file = FileField(validators=_quote_file_validators("File is required"))


class CorrectionFileForm(ApiForm):
    correction_file = FileField(validators=_quote_file_validators("Correction file is required"))


class TechnicalDrawingForm(ApiForm):
    technical_drawing = FileField(
        validators=[
            FileRequired("Technical drawing file is required"),
            FileAllowed(
                DRAWING_FILE_EXTENSIONS,
                "Only images, PDFs, and CAD files are allowed for technical drawings",
            ),
            FileSize(max_size=DRAWING_FILE_MAX_BYTES, message="File exceeds the 20MB limit"),
        ]
    )
