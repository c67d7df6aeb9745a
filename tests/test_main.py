from unittest.mock import patch

import pytest


class TestMain:
    @patch("pennywise.__main__.close_connection")
    @patch("pennywise.__main__.main_menu")
    @patch("pennywise.__main__.reconfigure")
    @patch("pennywise.__main__.initialize_db")
    @patch("pennywise.__main__.configure_logging")
    def test_boot_sequence(self, mock_logging, mock_init, mock_reconfigure, mock_menu, mock_close):
        from pennywise.__main__ import main

        main()

        mock_logging.assert_called_once()
        mock_init.assert_called_once()
        mock_reconfigure.assert_called_once()
        mock_menu.assert_called_once()
        mock_close.assert_called_once()

    @patch("pennywise.__main__.close_connection")
    @patch("pennywise.__main__.main_menu", side_effect=KeyboardInterrupt)
    @patch("pennywise.__main__.reconfigure")
    @patch("pennywise.__main__.initialize_db")
    @patch("pennywise.__main__.configure_logging")
    def test_connection_closed_on_interrupt(self, mock_logging, mock_init, mock_reconfigure, mock_menu, mock_close):
        from pennywise.__main__ import main

        with pytest.raises(KeyboardInterrupt):
            main()

        mock_close.assert_called_once()
