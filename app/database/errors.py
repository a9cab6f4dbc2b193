"""
Ошибки слоя хранения.

Каждая ошибка репозитория несёт имя операции и исходную причину
(`__cause__`), так что по тексту видно, на каком шаге всё сломалось:
сборка запроса, выполнение или разбор строк результата.
Нарушения ограничений (unique, check, foreign key) не классифицируются:
они приходят как StatementExecutionError с текстом драйвера.
"""
from __future__ import annotations

from sqlalchemy.exc import DBAPIError


# SQLSTATE, после которых транзакцию имеет смысл повторить целиком
RETRYABLE_SQLSTATES = frozenset({
    '40001',  # serialization_failure
    '40P01',  # deadlock_detected
})


class DatabaseError(Exception):
    """Базовая ошибка слоя хранения."""


class RepositoryError(DatabaseError):
    """Ошибка операции репозитория."""

    stage = 'repository'

    def __init__(self, operation: str, cause: BaseException):
        self.operation = operation
        self.cause = cause
        super().__init__(f'{operation}: {self.stage}: {cause}')


class StatementBuildError(RepositoryError):
    stage = 'build statement'


class StatementExecutionError(RepositoryError):
    stage = 'execute'


class RowMappingError(RepositoryError):
    stage = 'map rows'


class UnitOfWorkError(DatabaseError):
    """Ошибка жизненного цикла транзакции."""


class TransactionBeginError(UnitOfWorkError):
    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f'could not begin transaction: {cause}')


class CommitError(UnitOfWorkError):
    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f'commit failed: {cause}')


class RollbackError(UnitOfWorkError):
    """
    Откат не удался.

    Если откат запускался из-за ошибки бизнес-функции, она сохраняется
    в original_error - состояние транзакции неизвестно, нужна эскалация.
    """

    def __init__(self, cause: BaseException, original_error: BaseException | None = None):
        self.cause = cause
        self.original_error = original_error
        message = f'rollback failed: {cause}'
        if original_error is not None:
            message = f'{message} (after work function error: {original_error!r})'
        super().__init__(message)


class WorkFunctionError(UnitOfWorkError):
    """Бизнес-функция упала, транзакция откачена."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f'work function failed, transaction rolled back: {cause!r}')


def _sqlstate(exc: BaseException) -> str | None:
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        orig = exc.orig
        code = getattr(orig, 'sqlstate', None) or getattr(orig, 'pgcode', None)
        if code:
            return code
        exc = orig
    return getattr(exc, 'sqlstate', None) or getattr(exc, 'pgcode', None)


def is_serialization_failure(exc: BaseException) -> bool:
    """
    Есть ли в цепочке `__cause__` serialization failure или deadlock.

    `__context__` не учитывается: бизнес-ошибка, брошенная внутри
    except после 40001, повтор не вызывает.
    """
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if _sqlstate(current) in RETRYABLE_SQLSTATES:
            return True
        current = current.__cause__
    return False
