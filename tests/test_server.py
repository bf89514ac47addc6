from __future__ import annotations

from unittest.mock import MagicMock, patch

from kasbah_guard import server


@patch("kasbah_guard.server.uvicorn.run")
@patch("kasbah_guard.server.create_http_app")
@patch("kasbah_guard.server.configure_logging")
@patch("kasbah_guard.server.load_settings")
def test_run_entrypoint(
    mock_settings: MagicMock,
    mock_log: MagicMock,
    mock_create_http_app: MagicMock,
    mock_uvicorn_run: MagicMock,
) -> None:
    settings = MagicMock()
    settings.server.host = "127.0.0.1"
    settings.server.port = 8788
    mock_settings.return_value = settings

    server.run_entrypoint()

    mock_log.assert_called_once()
    mock_create_http_app.assert_called_once_with(settings=settings)
    mock_uvicorn_run.assert_called_once_with(
        mock_create_http_app.return_value,
        host="127.0.0.1",
        port=8788,
        ws="none",
        log_config=None,
    )
