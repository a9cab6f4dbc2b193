import asyncio

import structlog
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from app.config import settings
from app.database.database import AsyncSessionLocal, engine
from app.database.uow import UnitOfWorkFactory
from app.handlers import join_request
from app.logging_config import setup_logging
from app.services.access_service import AccessService


logger = structlog.get_logger(__name__)


async def main() -> None:
    setup_logging()

    bot = Bot(
        token=settings.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )

    uow_factory = UnitOfWorkFactory(AsyncSessionLocal)
    dp = Dispatcher(access_service=AccessService(uow_factory))
    join_request.register_handlers(dp)

    logger.info('Бот запущен')
    try:
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        await bot.session.close()
        await engine.dispose()
        logger.info('Бот остановлен')


if __name__ == '__main__':
    asyncio.run(main())
