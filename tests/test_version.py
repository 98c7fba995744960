import allure
from click.testing import CliRunner

from tasks_maint import __version__
from tasks_maint.main import tasks_maint

pytestmark = [
    allure.epic("CLI"),
    allure.feature("Version"),
]


def test_version():
    assert __version__


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(tasks_maint, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
