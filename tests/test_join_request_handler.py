from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiogram import types
from aiogram.exceptions import TelegramBadRequest
from aiogram.methods import ApproveChatJoinRequest

from app.database.errors import TransactionBeginError
from app.database.uow import UnitOfWorkFactory
from app.handlers.join_request import handle_chat_join_request, register_handlers
from app.services.access_service import AccessService

from tests.fixtures.database_fixtures import make_dbapi_error, mock_session, mock_session_factory


@pytest.fixture
def join_request():
    request = AsyncMock(spec=types.ChatJoinRequest)
    request.from_user = SimpleNamespace(id=1001)
    request.chat = SimpleNamespace(id=-100500)
    request.approve = AsyncMock()
    request.decline = AsyncMock()
    return request


@pytest.fixture
def access_service():
    service = AsyncMock(spec=AccessService)
    service.is_access_allowed = AsyncMock(return_value=True)
    return service


async def test_join_request_approved_for_subscriber(join_request, access_service):
    await handle_chat_join_request(join_request, access_service)

    access_service.is_access_allowed.assert_awaited_once_with(1001, -100500)
    join_request.approve.assert_awaited_once()
    join_request.decline.assert_not_called()


async def test_join_request_declined_without_access(join_request, access_service):
    access_service.is_access_allowed.return_value = False

    await handle_chat_join_request(join_request, access_service)

    join_request.decline.assert_awaited_once()
    join_request.approve.assert_not_called()


async def test_join_request_declined_when_database_unavailable(join_request, access_service):
    access_service.is_access_allowed.side_effect = TransactionBeginError(make_dbapi_error('08006'))

    await handle_chat_join_request(join_request, access_service)

    join_request.decline.assert_awaited_once()
    join_request.approve.assert_not_called()


async def test_join_request_telegram_error_is_not_raised(join_request, access_service):
    join_request.approve.side_effect = TelegramBadRequest(
        method=ApproveChatJoinRequest(chat_id=-100500, user_id=1001),
        message='HIDE_REQUESTER_MISSING',
    )

    await handle_chat_join_request(join_request, access_service)

    join_request.approve.assert_awaited_once()


def test_register_handlers_subscribes_to_join_requests():
    dp = MagicMock()

    register_handlers(dp)

    dp.chat_join_request.register.assert_called_once_with(handle_chat_join_request)


async def test_join_request_declined_when_connection_refused(join_request, mock_session, mock_session_factory):
    mock_session.connection.side_effect = ConnectionRefusedError(111, 'Connect call failed')
    service = AccessService(UnitOfWorkFactory(mock_session_factory, max_retries=0))

    await handle_chat_join_request(join_request, service)

    join_request.decline.assert_awaited_once()
    join_request.approve.assert_not_called()
