from enum import Enum
from typing import Optional, Type, TypeVar

from app.core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def parse_choice(enum_cls: Type[E], raw: Optional[str], field: str) -> E:
    """Строку из запроса -> член закрытого перечисления (без учёта регистра)."""
    allowed = ", ".join(member.value for member in enum_cls)
    if raw is None:
        raise ValidationError(f"Поле {field} обязательно. Допустимые значения: {allowed}", field=field)
    try:
        return enum_cls(raw.strip().lower())
    except ValueError:
        raise ValidationError(
            f"Недопустимое значение {field}: {raw}. Допустимые: {allowed}",
            field=field,
        )
