"""FastAPI integration.

Wires the engine into a FastAPI app:

    app = FastAPI()
    register_error_handlers(app)

    @app.post("/books")
    async def create_book(
        request=Depends(require(can_create_book)),
        book: dict = Depends(validated_body(book_schema)),
    ):
        ...

Predicates used with require() receive the Request as context; anything
they store on ``request.state`` is visible to the endpoint.
"""

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from policyforge.auth.policy import as_policy, authorize
from policyforge.errors import BadRequestError, PolicyForgeError, ValidationError, ValidationErrors
from policyforge.validation.schema import ObjectValidator, as_schema
from policyforge.validation.types import Step, strip_unset

logger = logging.getLogger(__name__)


def error_content(exc: PolicyForgeError) -> Any:
    """JSON body for a taxonomy error."""
    if isinstance(exc, ValidationErrors):
        return {"errors": exc.flatten()}
    if isinstance(exc, ValidationError):
        if exc.field:
            return {"errors": exc.to_structured()}
        return {"error": exc.message}
    return exc.to_structured()


async def policy_error_handler(request: Request, exc: PolicyForgeError) -> JSONResponse:
    if exc.status >= 500:
        logger.error("Unhandled %s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status, content=error_content(exc))


def register_error_handlers(app: FastAPI) -> None:
    """Render every PolicyForgeError as a JSON response with its status."""
    app.add_exception_handler(PolicyForgeError, policy_error_handler)


def require(policy: Any) -> Callable[[Request], Any]:
    """Create a dependency that authorizes the request against a policy.

    Args:
        policy: Any policy definition accepted by as_policy

    Returns:
        A FastAPI dependency returning the Request

    Example:
        @app.delete("/posts/{post_id}")
        async def delete_post(request=Depends(require(["isSignedIn", "isOwner"]))):
            ...
    """
    resolved = as_policy(policy)

    async def dependency(request: Request) -> Request:
        await authorize(resolved, request)
        return request

    return dependency


def validated_body(
    schema: ObjectValidator | Mapping[str, Step], **opts: Any
) -> Callable[[Request], Any]:
    """Create a dependency that validates the JSON request body.

    Keyword arguments are passed to the schema as options (``many``,
    ``partial`` or per-field options). Absent optional fields are removed
    from the result.

    Raises:
        BadRequestError 400 if the body is not JSON
        ValidationErrors 400 if the body is invalid
    """
    validator = as_schema(schema)

    async def dependency(request: Request) -> Any:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise BadRequestError("Request body must be valid JSON") from e
        return strip_unset(await validator(body, opts))

    return dependency
