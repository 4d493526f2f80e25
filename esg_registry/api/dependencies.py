"""FastAPI dependencies.

The container is created at startup and stored on ``app.state``.
Caller identity is the ``X-Participant-Id`` header resolved against the
mirror store; issuing and checking credentials happens upstream.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request

from esg_registry.api.errors import problem_exception
from esg_registry.bootstrap.container import Container
from esg_registry.domain.errors import ParticipantNotFoundError
from esg_registry.domain.models.participant import Participant

PARTICIPANT_HEADER = "X-Participant-Id"


def get_container(request: Request) -> Container:
    return request.app.state.container


async def get_current_participant(
    request: Request,
    x_participant_id: str | None = Header(default=None, alias=PARTICIPANT_HEADER),
    container: Container = Depends(get_container),
) -> Participant:
    """Resolve the calling participant.

    Raises:
        HTTPException 401: Header missing or not a UUID.
        HTTPException 404: No participant with that id.
    """
    if not x_participant_id:
        raise HTTPException(
            status_code=401,
            detail={
                "type": "urn:esg-registry:error:unauthenticated",
                "title": "Unauthenticated",
                "status": 401,
                "detail": f"{PARTICIPANT_HEADER} header is required",
                "instance": str(request.url),
            },
        )
    try:
        participant_id = UUID(x_participant_id)
    except ValueError:
        raise HTTPException(
            status_code=401,
            detail={
                "type": "urn:esg-registry:error:unauthenticated",
                "title": "Unauthenticated",
                "status": 401,
                "detail": f"{PARTICIPANT_HEADER} must be a UUID",
                "instance": str(request.url),
            },
        ) from None

    participant = await container.participants.get_by_id(participant_id)
    if participant is None:
        raise problem_exception(ParticipantNotFoundError(participant_id), request)
    return participant
