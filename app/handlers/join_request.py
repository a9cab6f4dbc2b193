"""
Handlers для заявок на вступление в платные каналы и группы.
"""
import structlog
from aiogram import Dispatcher, types
from aiogram.exceptions import TelegramAPIError

from app.database.errors import DatabaseError
from app.services.access_service import AccessService


logger = structlog.get_logger(__name__)


async def handle_chat_join_request(
    request: types.ChatJoinRequest,
    access_service: AccessService,
) -> None:
    """
    Одобрить заявку при активной подписке, иначе отклонить.

    Если БД недоступна или транзакция не прошла - отклоняем:
    пользователь сможет подать заявку ещё раз.
    """
    tg_id = request.from_user.id
    chat_id = request.chat.id

    try:
        allowed = await access_service.is_access_allowed(tg_id, chat_id)
    except DatabaseError as error:
        logger.error(
            'Не удалось проверить доступ, заявка отклонена',
            tg_id=tg_id,
            chat_id=chat_id,
            error=str(error),
        )
        allowed = False

    try:
        if allowed:
            await request.approve()
        else:
            await request.decline()
    except TelegramAPIError as error:
        logger.warning(
            'Не удалось ответить на заявку',
            tg_id=tg_id,
            chat_id=chat_id,
            approve=allowed,
            error=str(error),
        )


def register_handlers(dp: Dispatcher) -> None:
    dp.chat_join_request.register(handle_chat_join_request)
