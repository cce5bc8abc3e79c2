from invoke import task


@task
def test(c, k=""):
    """Run the test suite, optionally filtered with -k."""
    c.run(f"uv run pytest {'-k ' + repr(k) if k else ''}", pty=True)


@task
def check(c):
    """Run Django system checks for the fileupload app."""
    c.run(
        'uv run python -c "'
        "import os; os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'tests.settings'); "
        "from django.core.management import execute_from_command_line; "
        "execute_from_command_line(['manage.py', 'check', 'fileupload'])"
        '"'
    )
