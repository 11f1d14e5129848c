from __future__ import annotations

import logging

from retdec.core.config import Settings, get_settings
from retdec.core.errors import ConfigurationError, ProtocolError
from retdec.core.telemetry import get_tracer, setup_telemetry
from retdec.jobs.analysis import Analysis, AnalysisArguments
from retdec.services.connection import (
    APIArguments,
    HttpxAPIConnectionFactory,
    ResponseVerifyingAPIConnectionFactory,
)

logger = logging.getLogger(__name__)


class Fileinfo:
    """File-analyzing service."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        setup_telemetry(self._settings)
        self._conn_factory = ResponseVerifyingAPIConnectionFactory(HttpxAPIConnectionFactory(self._settings))

    def start_analysis(self, args: AnalysisArguments) -> Analysis:
        api_args = self._create_api_args(args)
        with get_tracer(__name__).start_as_current_span("fileinfo.start_analysis") as span:
            conn = self._conn_factory.new_connection()
            url = f"{conn.api_url()}/fileinfo/analyses"
            try:
                response = conn.send_post_request(url, api_args)
                analysis_id = response.json_value_as_string("id")
                if analysis_id is None:
                    raise ProtocolError(url, f"{url} returned invalid JSON response", status_code=response.status_code)
                span.set_attribute("job.id", analysis_id)
            except Exception:
                conn.close()
                raise

        logger.info("analysis started id=%s", analysis_id)
        return Analysis(
            analysis_id,
            conn,
            poll_interval_seconds=self._settings.poll_interval_seconds,
            max_poll_attempts=self._settings.max_poll_attempts,
        )

    def _create_api_args(self, args: AnalysisArguments) -> APIArguments:
        if args.input_file is None:
            raise ConfigurationError("no input file given")
        api_args = APIArguments()
        api_args.add_opt_string_arg("output_format", args.output_format)
        api_args.add_opt_bool_arg("verbose", args.verbose)
        api_args.add_file("input", args.input_file)
        return api_args
