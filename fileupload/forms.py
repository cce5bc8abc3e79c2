"""
Form fields and mixins running uploads through FileUpload validation.
"""

from django import forms
from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import UploadedFile

from .descriptor import StagedUploads
from .options import Option
from .upload import FileUpload


def _validation_error(upload):
    return ValidationError(upload.error_message, code=upload.error_code.name.lower())


class ValidatedFileField(forms.FileField):
    """
    A FileField that runs FileUpload.check() on the uploaded file.

    Usage:
        class AvatarForm(forms.Form):
            avatar = ValidatedFileField(upload_config={"sizeLimit": "-2M", "allowMime": "image/"})
    """

    def __init__(self, *, upload_config=None, upload_settings=None, **kwargs):
        super().__init__(**kwargs)
        self.upload_config = dict(upload_config or {})
        self.upload_settings = upload_settings

    def clean(self, data, initial=None):
        uploaded_file = super().clean(data, initial)
        if not isinstance(uploaded_file, UploadedFile) or uploaded_file is initial:
            return uploaded_file

        # Never let a form field raise anything but ValidationError
        config = {**self.upload_config, Option.NO_THROW.value: True}
        with StagedUploads({"file": uploaded_file}) as staged:
            upload = FileUpload("file", config, files=staged, settings=self.upload_settings)
            if not upload.check():
                raise _validation_error(upload)

        return uploaded_file


class FileUploadFormMixin:
    """
    Mixin for forms that validate an upload and save it to a directory.

    Usage:
        class DocumentForm(FileUploadFormMixin, forms.Form):
            upload_file = forms.FileField()

            upload_field_name = "upload_file"
            upload_config = {"saveDir": "/srv/documents", "allowExt": "pdf"}

        form = DocumentForm(request.POST, request.FILES)
        if form.is_valid():
            upload = form.save_upload()
    """

    upload_field_name = "upload_file"  # Override in subclass
    upload_config = {}  # Override in subclass
    upload_settings = None

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        # Add the upload field if not already present
        if self.upload_field_name and self.upload_field_name not in self.fields:
            self.fields[self.upload_field_name] = forms.FileField(label="Upload File", help_text="Select a file to upload")

    def get_upload_config(self):
        """Override to compute the config per form, e.g. from other cleaned data."""
        return {**self.upload_config, Option.NO_THROW.value: True}

    def clean(self):
        cleaned_data = super().clean()

        uploaded_file = cleaned_data.get(self.upload_field_name)
        if uploaded_file:
            upload = FileUpload.from_uploaded_file(uploaded_file, self.get_upload_config(), settings=self.upload_settings)
            if upload.check():
                self._upload = upload
            else:
                self.add_error(self.upload_field_name, _validation_error(upload))

        return cleaned_data

    def save_upload(self, directory=None):
        """
        Save the validated upload.

        Returns:
            FileUpload: The upload, with destination set

        Raises:
            ValidationError: If the file cannot be saved
        """
        upload = getattr(self, "_upload", None)
        if upload is None:
            raise ValueError("save_upload() called before a successful is_valid()")
        try:
            if not upload.save(directory):
                raise _validation_error(upload)
        finally:
            upload.staged.cleanup()
        return upload
