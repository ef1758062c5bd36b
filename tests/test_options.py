"""Tests for suite options and settings."""

from io import StringIO
from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

from pytest_bdspec.options import Output, Parallel, SuiteSettings

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


def test_output_defaults() -> None:
    """Outputs are plain by default."""
    output = Output(StringIO())

    assert not output.colorful
    assert not output.durations
    assert not output.filenames
    assert output.indent == '  '


@pytest.mark.parametrize('data', (
    pytest.param({'stream': object()}, id='no write'),
    pytest.param({'stream': StringIO(), 'indent': '   '}, id='three spaces'),
    pytest.param({'stream': StringIO(), 'colours': True}, id='unknown field'),
    pytest.param({}, id='no stream'),
))
def test_invalid_outputs(data: dict) -> None:
    """Outputs reject invalid streams, indents and unknown fields."""
    with pytest.raises(ValidationError):
        Output(**data)


def test_output_is_frozen() -> None:
    """Options can not change once a suite is built."""
    output = Output(StringIO())

    with pytest.raises(ValidationError):
        output.colorful = True  # type: ignore[misc]


def test_output_flushes(mocker: 'MockerFixture') -> None:
    """Writes are flushed right away."""
    stream = mocker.Mock()
    Output(stream).write('report')

    stream.write.assert_called_once_with('report')
    stream.flush.assert_called_once_with()


def test_parallel() -> None:
    """The completion callback may be given positionally."""
    def done() -> None: ...

    assert Parallel().done is None
    assert Parallel(done).done is done
    assert Parallel(workers=2).workers == 2

    with pytest.raises(ValidationError):
        Parallel(workers=0)


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Settings read `BDSPEC_*` variables."""
    monkeypatch.setenv('BDSPEC_COLORFUL', 'false')
    monkeypatch.setenv('BDSPEC_FILENAMES', 'true')
    monkeypatch.setenv('BDSPEC_INDENT', '\t')
    monkeypatch.setenv('BDSPEC_TIMEOUT', '2.5')

    settings = SuiteSettings()

    assert not settings.colorful
    assert settings.durations
    assert settings.filenames
    assert settings.indent == '\t'
    assert settings.timeout == 2.5  # noqa: PLR2004
    assert settings.workers is None


def test_settings_output() -> None:
    """Settings build an output with their decorations."""
    stream = StringIO()
    output = SuiteSettings(colorful=False, indent='    ').output(stream)

    assert output.stream is stream
    assert not output.colorful
    assert output.durations
    assert output.indent == '    '
