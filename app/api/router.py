from fastapi import APIRouter
from app.api.v1.auth import router as auth_router
from app.api.v1.routines import router as routines_router
from app.api.v1.exercises import router as exercises_router, categories_router
from app.api.v1.users import router as users_router
from app.api.v1.user_profiles import router as user_profiles_router
from app.api.v1.records import body_router, workout_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(routines_router, prefix="/routines", tags=["routines"])
api_router.include_router(exercises_router, prefix="/exercises", tags=["exercises"])
api_router.include_router(categories_router, prefix="/categories", tags=["categories"])
api_router.include_router(users_router, prefix="/users", tags=["users"])
api_router.include_router(user_profiles_router, prefix="/userprofiles", tags=["userprofiles"])
api_router.include_router(body_router, prefix="/bodyrecords", tags=["bodyrecords"])
api_router.include_router(workout_router, prefix="/workoutrecords", tags=["workoutrecords"])
