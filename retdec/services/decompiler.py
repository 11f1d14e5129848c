from __future__ import annotations

import logging

from retdec.core.config import Settings, get_settings
from retdec.core.errors import ConfigurationError, ProtocolError
from retdec.core.telemetry import get_tracer, setup_telemetry
from retdec.jobs.decompilation import Decompilation, DecompilationArguments
from retdec.services.connection import (
    APIArguments,
    HttpxAPIConnectionFactory,
    ResponseVerifyingAPIConnectionFactory,
)

logger = logging.getLogger(__name__)


class Decompiler:
    """File-decompiling service.

    Example::

        decompiler = Decompiler(Settings(api_key="MY-API-KEY"))
        args = DecompilationArguments(input_file=File.from_path("file.exe"))
        with decompiler.start_decompilation(args) as decompilation:
            decompilation.wait_until_finished()
            print(decompilation.get_output_hll_code())
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        setup_telemetry(self._settings)
        self._conn_factory = ResponseVerifyingAPIConnectionFactory(HttpxAPIConnectionFactory(self._settings))

    def start_decompilation(self, args: DecompilationArguments) -> Decompilation:
        api_args = self._create_api_args(args)
        with get_tracer(__name__).start_as_current_span("decompiler.start_decompilation") as span:
            conn = self._conn_factory.new_connection()
            url = f"{conn.api_url()}/decompiler/decompilations"
            try:
                response = conn.send_post_request(url, api_args)
                decompilation_id = response.json_value_as_string("id")
                if decompilation_id is None:
                    raise ProtocolError(url, f"{url} returned invalid JSON response", status_code=response.status_code)
                span.set_attribute("job.id", decompilation_id)
            except Exception:
                conn.close()
                raise

        logger.info("decompilation started id=%s", decompilation_id)
        return Decompilation(
            decompilation_id,
            conn,
            poll_interval_seconds=self._settings.poll_interval_seconds,
            max_poll_attempts=self._settings.max_poll_attempts,
        )

    def _create_api_args(self, args: DecompilationArguments) -> APIArguments:
        if args.input_file is None:
            raise ConfigurationError("no input file given")
        api_args = APIArguments()
        api_args.add_string_arg("mode", "bin")
        api_args.add_opt_string_arg("target_language", args.target_language)
        api_args.add_opt_string_arg("architecture", args.architecture)
        api_args.add_opt_string_arg("file_format", args.file_format)
        api_args.add_file("input", args.input_file)
        if args.pdb_file is not None:
            api_args.add_file("pdb", args.pdb_file)
        return api_args
