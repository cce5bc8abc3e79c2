from django.apps import AppConfig


class FileuploadAppConfig(AppConfig):
    name = "fileupload"
    verbose_name = "File upload"

    def ready(self):
        # Import checks to register them
        from . import checks  # noqa: F401
