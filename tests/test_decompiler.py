from __future__ import annotations

import itertools

import pytest

from retdec.core.config import Settings
from retdec.core.errors import ConfigurationError, ProtocolError, TransportError
from retdec.core.files import File
from retdec.jobs.decompilation import DecompilationArguments
from retdec.services import decompiler as decompiler_module
from retdec.services.connection import APIArguments, ResponseVerifyingAPIConnectionFactory
from retdec.services.decompiler import Decompiler

from conftest import API_URL, RecordingConnection, RecordingConnectionFactory

SUBMIT_URL = f"{API_URL}/decompiler/decompilations"


@pytest.fixture
def factory(monkeypatch, conn: RecordingConnection) -> RecordingConnectionFactory:
    recording_factory = RecordingConnectionFactory(conn)
    monkeypatch.setattr(decompiler_module, "HttpxAPIConnectionFactory", lambda settings: recording_factory)
    return recording_factory


def test_start_decompilation_sends_mode_and_input_file(
    settings: Settings, conn: RecordingConnection, factory: RecordingConnectionFactory
) -> None:
    input_file = File.from_content_with_name(b"content", "file.exe")
    conn.add_json_response("POST", SUBMIT_URL, {"id": "ID"})

    decompilation = Decompiler(settings).start_decompilation(DecompilationArguments(input_file=input_file))

    expected = APIArguments()
    expected.add_string_arg("mode", "bin")
    expected.add_file("input", input_file)
    assert decompilation.id == "ID"
    assert conn.request_sent("POST", SUBMIT_URL, expected)
    assert factory.created == 1


@pytest.mark.parametrize(
    ("target_language", "architecture", "file_format", "with_pdb"),
    list(itertools.product([None, "py"], [None, "x86"], [None, "elf"], [False, True])),
)
def test_start_decompilation_always_sends_mode_and_input_file(
    settings: Settings,
    conn: RecordingConnection,
    factory: RecordingConnectionFactory,
    target_language: str | None,
    architecture: str | None,
    file_format: str | None,
    with_pdb: bool,
) -> None:
    input_file = File.from_content_with_name(b"\x7fELF", "prog")
    pdb_file = File.from_content_with_name(b"pdb", "prog.pdb") if with_pdb else None
    conn.add_json_response("POST", SUBMIT_URL, {"id": "ID"})

    Decompiler(settings).start_decompilation(
        DecompilationArguments(
            input_file=input_file,
            pdb_file=pdb_file,
            target_language=target_language,
            architecture=architecture,
            file_format=file_format,
        )
    )

    _, _, sent = conn.requests[0]
    assert sent is not None
    assert sent.args()["mode"] == "bin"
    assert sent.files()["input"] == input_file
    optional = {"target_language": target_language, "architecture": architecture, "file_format": file_format}
    for name, value in optional.items():
        if value is None:
            assert name not in sent.args()
        else:
            assert sent.args()[name] == value
    assert ("pdb" in sent.files()) is with_pdb


def test_start_decompilation_without_input_file_sends_nothing(
    settings: Settings, conn: RecordingConnection, factory: RecordingConnectionFactory
) -> None:
    conn.add_json_response("POST", SUBMIT_URL, {"id": "ID"})

    with pytest.raises(ConfigurationError, match="no input file given"):
        Decompiler(settings).start_decompilation(DecompilationArguments())

    assert conn.requests == []
    assert factory.created == 0


def test_start_decompilation_fails_when_response_has_no_id(
    settings: Settings, conn: RecordingConnection, factory: RecordingConnectionFactory
) -> None:
    conn.add_json_response("POST", SUBMIT_URL, {})
    args = DecompilationArguments(input_file=File.from_content_with_name(b"content", "file.exe"))

    with pytest.raises(ProtocolError) as exc_info:
        Decompiler(settings).start_decompilation(args)

    assert str(exc_info.value) == f"{SUBMIT_URL} returned invalid JSON response"
    assert conn.closed


def test_start_decompilation_surfaces_rejected_submission(
    settings: Settings, conn: RecordingConnection, factory: RecordingConnectionFactory
) -> None:
    conn.add_json_response("POST", SUBMIT_URL, {"message": "Unauthorized by API Key"}, status_code=401)
    args = DecompilationArguments(input_file=File.from_content_with_name(b"content", "file.exe"))

    with pytest.raises(ProtocolError) as exc_info:
        Decompiler(settings).start_decompilation(args)

    assert exc_info.value.status_code == 401
    assert "Unauthorized by API Key" in str(exc_info.value)
    assert conn.closed


def test_start_decompilation_propagates_transport_errors(
    settings: Settings, conn: RecordingConnection, factory: RecordingConnectionFactory
) -> None:
    conn.add_response("POST", SUBMIT_URL, TransportError(SUBMIT_URL, "connection refused"))
    args = DecompilationArguments(input_file=File.from_content_with_name(b"content", "file.exe"))

    with pytest.raises(TransportError):
        Decompiler(settings).start_decompilation(args)

    assert conn.closed


def test_decompiler_verifies_responses_of_default_factory(settings: Settings) -> None:
    decompiler = Decompiler(settings)

    assert isinstance(decompiler._conn_factory, ResponseVerifyingAPIConnectionFactory)


def test_decompiler_requires_api_key() -> None:
    with pytest.raises(ConfigurationError, match="no API key given"):
        Decompiler(Settings(api_key=None, api_url=API_URL))
