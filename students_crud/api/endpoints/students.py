import logging
import re

from fastapi import APIRouter, Depends, Request, status
from pydantic import ValidationError
from starlette.requests import ClientDisconnect

from students_crud.api.deps import get_store
from students_crud.core.exceptions import (
    BadRequestException,
    InternalServerException,
    NotFoundError,
    NotFoundException,
)
from students_crud.schemas.student import (
    MessageResponse,
    Student,
    StudentCreated,
    StudentIn,
)
from students_crud.services.student.storage import StudentStorage

logger = logging.getLogger(__name__)

router = APIRouter()

_ID_PATTERN = re.compile(r"[0-9]+")
# Upper bound of a signed 64-bit integer
_MAX_ID = 2**63 - 1


def parse_student_id(raw_id: str) -> int:
    """Accept only positive decimal integers; anything else is `invalid id`."""
    if not _ID_PATTERN.fullmatch(raw_id):
        logger.warning(f"invalid id: {raw_id!r}")
        raise BadRequestException("invalid id")
    student_id = int(raw_id)
    if student_id < 1 or student_id > _MAX_ID:
        logger.warning(f"invalid id: {raw_id!r}")
        raise BadRequestException("invalid id")
    return student_id


async def read_student_body(request: Request) -> StudentIn:
    try:
        raw = await request.body()
    except ClientDisconnect:
        logger.warning("failed to read request body")
        raise BadRequestException("failed to read request body")

    try:
        return StudentIn.model_validate_json(raw)
    except ValidationError as e:
        logger.warning(f"failed to unmarshal data: {e.error_count()} error(s)")
        raise BadRequestException("failed to unmarshal data")


@router.post("", response_model=StudentCreated, status_code=status.HTTP_201_CREATED)
async def create_student(
    request: Request,
    store: StudentStorage = Depends(get_store)
):
    """
    Create a student from `{"name", "email"}`; returns the new id.
    """
    student = await read_student_body(request)

    try:
        student_id = await store.create(student)
    except Exception as e:
        logger.error(f"failed to create student: {e}")
        raise InternalServerException("failed to create student")

    return StudentCreated(id=student_id)


@router.get("/{student_id}", response_model=Student)
async def get_student(
    student_id: str,
    store: StudentStorage = Depends(get_store)
):
    """
    Get one student by id
    """
    parsed_id = parse_student_id(student_id)

    try:
        return await store.read(parsed_id)
    except NotFoundError as e:
        logger.warning(f"student not found: {e}")
        raise NotFoundException("student not found")
    except Exception as e:
        logger.error(f"failed to read student: {e}")
        raise InternalServerException("failed to read student")


@router.put("/{student_id}", response_model=MessageResponse)
async def update_student(
    student_id: str,
    request: Request,
    store: StudentStorage = Depends(get_store)
):
    """
    Overwrite name and email of a student. The id always comes from the path.
    """
    parsed_id = parse_student_id(student_id)
    payload = await read_student_body(request)
    student = Student(id=parsed_id, name=payload.name, email=payload.email)

    try:
        await store.update(student)
    except NotFoundError as e:
        logger.warning(f"student not found: {e}")
        raise NotFoundException("student not found")
    except Exception as e:
        logger.error(f"failed to update student: {e}")
        raise InternalServerException("failed to update student")

    return MessageResponse(message="student updated successfully")


@router.delete("/{student_id}", response_model=MessageResponse)
async def delete_student(
    student_id: str,
    store: StudentStorage = Depends(get_store)
):
    parsed_id = parse_student_id(student_id)

    try:
        await store.delete(parsed_id)
    except Exception as e:
        logger.error(f"failed to delete student: {e}")
        raise InternalServerException("failed to delete student")

    return MessageResponse(message="student deleted successfully")
