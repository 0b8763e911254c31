import enum


class LevelEnum(str, enum.Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class CategoryEnum(str, enum.Enum):
    upper_body = "upper_body"
    lower_body = "lower_body"
    cardio = "cardio"
    core = "core"
    full_body = "full_body"
