class PostboardError(Exception):
    """Базовая ошибка слоя доступа к данным"""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(PostboardError, ValueError):
    """Некорректные входные данные, вызывающий может исправить запрос"""


class Unauthenticated(PostboardError):
    """Токен отсутствует или не сопоставлен ни одному пользователю"""


class Unauthorized(PostboardError, PermissionError):
    """Пользователь аутентифицирован, но не является владельцем"""


class NotFound(PostboardError, LookupError):
    """Сущность с таким идентификатором не существует"""


class StoreUnavailable(PostboardError):
    """Сбой ввода-вывода хранилища. Повтор допустим только на стороне вызывающего"""
