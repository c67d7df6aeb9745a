from unittest.mock import MagicMock, patch


class TestBuildService:
    @patch("pennywise.cli.app.get_unit_of_work")
    def test_returns_bill_service(self, mock_uow):
        from pennywise.cli.app import _build_service
        from pennywise.services.bill_service import BillService

        service = _build_service()
        assert isinstance(service, BillService)
        assert service.uow is mock_uow.return_value


class TestMainMenu:
    @patch("pennywise.cli.app._build_service")
    @patch("pennywise.cli.app.questionary")
    def test_quit_immediately(self, mock_q, mock_build):
        from pennywise.cli.app import main_menu

        mock_q.select.return_value.ask.return_value = "Quit"
        main_menu()
        mock_q.select.return_value.ask.assert_called_once()

    @patch("pennywise.cli.app._build_service")
    @patch("pennywise.cli.app.questionary")
    def test_none_exits(self, mock_q, mock_build):
        from pennywise.cli.app import main_menu

        mock_q.select.return_value.ask.return_value = None
        main_menu()

    @patch("pennywise.cli.app.list_instances_menu")
    @patch("pennywise.cli.app._build_service")
    @patch("pennywise.cli.app.questionary")
    def test_list_bills(self, mock_q, mock_build, mock_list):
        from pennywise.cli.app import main_menu
        from pennywise.settings import settings

        mock_q.select.return_value.ask.side_effect = ["List bills", "Quit"]
        main_menu()
        mock_list.assert_called_once_with(mock_build.return_value, settings.owner_id)

    @patch("pennywise.cli.app.create_bill_menu")
    @patch("pennywise.cli.app._build_service")
    @patch("pennywise.cli.app.questionary")
    def test_new_bill(self, mock_q, mock_build, mock_create):
        from pennywise.cli.app import main_menu

        mock_build.return_value = MagicMock()
        mock_q.select.return_value.ask.side_effect = ["New bill", "Quit"]
        main_menu()
        mock_create.assert_called_once()
