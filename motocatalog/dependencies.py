from fastapi import Request

from motocatalog.config import Settings
from motocatalog.image_processing import ImageProcessor
from motocatalog.image_storage import ImageStorage


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_image_processor(request: Request) -> ImageProcessor:
    return request.app.state.image_processor


def get_image_storage(request: Request) -> ImageStorage:
    return request.app.state.image_storage
