from fastapi import APIRouter

from stockanews.api.endpoints.news import router as news_router


api_router = APIRouter()
api_router.include_router(news_router, tags=["news"])
