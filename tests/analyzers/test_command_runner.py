"""Tests for the local command analyzer runner."""

import io
import sys
import zipfile
import pytest

from codegate.analyzers.command_runner import CommandAnalyzerRunner
from codegate.exceptions import AnalyzerExecutionError
from codegate.models.analysis_models import AnalyzerSpec

# Lists the extracted files as one issue each
LIST_FILES = (
    "import json, os, sys; "
    "root = sys.argv[1]; "
    "files = sorted(os.listdir(root)); "
    "print(json.dumps({'analyzer': {'name': 'lister', 'version': '1'}, "
    "'issues': [{'ruleKey': 'seen', 'severity': 'INFO', 'type': 'CODE_SMELL', "
    "'filePath': f, 'message': 'seen'} for f in files]}))"
)


def snapshot(files) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def spec(*command) -> AnalyzerSpec:
    return AnalyzerSpec(key="lister", config={"command": list(command)})


@pytest.mark.asyncio
class TestCommandAnalyzerRunner:
    """Test subprocess execution over an extracted snapshot."""

    async def test_runs_over_extracted_source(self, analysis_factory):
        runner = CommandAnalyzerRunner()

        report = await runner.run(
            spec(sys.executable, "-c", LIST_FILES, "{source}"),
            snapshot({"app.py": "x = 1\n", "util.py": ""}),
            analysis_factory("a1"),
        )

        assert [i["filePath"] for i in report["issues"]] == ["app.py", "util.py"]

    async def test_non_zero_exit(self, analysis_factory):
        with pytest.raises(AnalyzerExecutionError) as exc_info:
            await CommandAnalyzerRunner().run(
                spec(sys.executable, "-c", "import sys; sys.exit(3)"),
                snapshot({"a.py": ""}),
                analysis_factory("a1"),
            )
        assert "exited with code 3" in str(exc_info.value)

    async def test_no_output(self, analysis_factory):
        with pytest.raises(AnalyzerExecutionError):
            await CommandAnalyzerRunner().run(
                spec(sys.executable, "-c", "pass"),
                snapshot({"a.py": ""}),
                analysis_factory("a1"),
            )

    async def test_invalid_json(self, analysis_factory):
        with pytest.raises(AnalyzerExecutionError):
            await CommandAnalyzerRunner().run(
                spec(sys.executable, "-c", "print('not json')"),
                snapshot({"a.py": ""}),
                analysis_factory("a1"),
            )

    async def test_missing_executable(self, analysis_factory):
        with pytest.raises(AnalyzerExecutionError):
            await CommandAnalyzerRunner().run(
                spec("codegate-no-such-analyzer"),
                snapshot({"a.py": ""}),
                analysis_factory("a1"),
            )

    async def test_no_command(self, analysis_factory):
        with pytest.raises(AnalyzerExecutionError):
            await CommandAnalyzerRunner().run(
                AnalyzerSpec(key="lister"), snapshot({"a.py": ""}), analysis_factory("a1")
            )

    async def test_bad_archive(self, analysis_factory):
        with pytest.raises(AnalyzerExecutionError):
            await CommandAnalyzerRunner().run(
                spec(sys.executable, "-c", "pass"), b"not a zip", analysis_factory("a1")
            )

    async def test_path_traversal_rejected(self, analysis_factory):
        with pytest.raises(AnalyzerExecutionError):
            await CommandAnalyzerRunner().run(
                spec(sys.executable, "-c", "pass"),
                snapshot({"../escape.py": ""}),
                analysis_factory("a1"),
            )
