from app.models.enums import LevelEnum, CategoryEnum
from app.models.user import User, RoleEnum
from app.models.exercise import Exercise, ExerciseCategory
from app.models.routine import Routine, RoutineExercise
from app.models.user_profile import UserProfile
from app.models.records import BodyRecord, WorkoutRecord

__all__ = [
    "LevelEnum", "CategoryEnum",
    "User", "RoleEnum",
    "Exercise", "ExerciseCategory",
    "Routine", "RoutineExercise",
    "UserProfile",
    "BodyRecord", "WorkoutRecord",
]
