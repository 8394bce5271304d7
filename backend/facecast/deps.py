"""
Request-scoped access to the resources built in the application lifespan.
"""
import httpx
from fastapi import Request

from .inference.fal_runner import FalVideoClient
from .services.notifications import Mailer
from .storage import BlobStore


def get_http(request: Request) -> httpx.AsyncClient:
    return request.app.state.http


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_video_provider(request: Request) -> FalVideoClient:
    return request.app.state.video_provider


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer
