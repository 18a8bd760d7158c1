"""
API key routes for the user profile.

    POST   /api/user/update-api-key  {"apiKey": "..."}  save (encrypted) key
    GET    /api/user/get-api-key                       {"hasApiKey": bool}
    DELETE /api/user/api-key                           remove key

The authenticated user id is expected in ``request["user_id"]``, set by the
auth middleware in front of these routes.
"""
import logging
from typing import Any

import orjson
from aiohttp import web

from .exceptions import EncryptionFailure, UserNotFound
from .vault.store import CredentialStore

logger = logging.getLogger("pulsar.vault")

UPDATE_API_KEY_PATH = "/api/user/update-api-key"
GET_API_KEY_PATH = "/api/user/get-api-key"
API_KEY_PATH = "/api/user/api-key"
USER_ID_KEY = "user_id"
CREDENTIAL_STORE = web.AppKey("credential_store", CredentialStore)


def _dumps(obj: Any) -> str:
    return orjson.dumps(obj).decode("utf-8")


def json_response(data: Any, status: int = 200) -> web.Response:
    return web.json_response(data, status=status, dumps=_dumps)


def _user_id(request: web.Request) -> Any:
    return request.get(USER_ID_KEY)


async def update_api_key(request: web.Request) -> web.Response:
    user_id = _user_id(request)
    if user_id is None:
        return json_response({"error": "Unauthorized"}, status=401)
    try:
        body = orjson.loads(await request.read())
    except orjson.JSONDecodeError:
        return json_response({"error": "Invalid JSON body"}, status=400)
    api_key = body.get("apiKey") if isinstance(body, dict) else None
    if not isinstance(api_key, str) or not api_key.strip():
        return json_response({"error": "API key is required"}, status=400)

    store = request.app[CREDENTIAL_STORE]
    try:
        await store.save_api_key(user_id, api_key.strip())
    except UserNotFound:
        return json_response({"error": "User not found"}, status=404)
    except EncryptionFailure as err:
        logger.error("[User] Update API key error: user=%s %s", user_id, err)
        return json_response({"error": "Failed to update API key"}, status=500)
    return json_response({"message": "API key updated successfully"})


async def get_api_key(request: web.Request) -> web.Response:
    user_id = _user_id(request)
    if user_id is None:
        return json_response({"error": "Unauthorized"}, status=401)
    store = request.app[CREDENTIAL_STORE]
    try:
        has_key = await store.has_api_key(user_id)
    except UserNotFound:
        return json_response({"error": "User not found"}, status=404)
    return json_response({"hasApiKey": has_key})


async def delete_api_key(request: web.Request) -> web.Response:
    user_id = _user_id(request)
    if user_id is None:
        return json_response({"error": "Unauthorized"}, status=401)
    store = request.app[CREDENTIAL_STORE]
    try:
        await store.clear_api_key(user_id)
    except UserNotFound:
        return json_response({"error": "User not found"}, status=404)
    return json_response({"message": "API key removed"})


def setup_api_key_routes(app: web.Application, store: CredentialStore) -> None:
    """Register the API key routes and attach the store to the app."""
    app[CREDENTIAL_STORE] = store
    app.router.add_post(UPDATE_API_KEY_PATH, update_api_key)
    app.router.add_get(GET_API_KEY_PATH, get_api_key)
    app.router.add_delete(API_KEY_PATH, delete_api_key)
