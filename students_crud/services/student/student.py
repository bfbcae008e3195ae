import asyncio
import logging

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from students_crud.core.exceptions import NotFoundError, PersistenceError
from students_crud.models.student import Student as StudentModel
from students_crud.schemas.student import Student, StudentIn

logger = logging.getLogger(__name__)

# Driver errors, plus connection failures asyncpg raises before SQLAlchemy can wrap them
STORE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


class StudentStore:
    """
    Record store for students backed by a SQLAlchemy async session factory.

    Each call opens its own session and runs exactly one statement.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def create(self, student: StudentIn) -> int:
        """Insert one row and return the id the database assigned."""
        op = "storage.students.create"
        stmt = (
            insert(StudentModel)
            .values(name=student.name, email=student.email)
            .returning(StudentModel.id)
        )
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                student_id = result.scalar_one()
                await session.commit()
        except STORE_ERRORS as e:
            raise PersistenceError(op, str(e)) from e

        logger.debug(f"Created student {student_id}")
        return student_id

    async def read(self, student_id: int) -> Student:
        op = "storage.students.read"
        stmt = select(StudentModel).where(StudentModel.id == student_id)
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                db_student = result.scalar_one_or_none()
        except STORE_ERRORS as e:
            raise PersistenceError(op, str(e)) from e

        if db_student is None:
            raise NotFoundError(op, student_id)
        return Student.model_validate(db_student)

    async def update(self, student: Student) -> None:
        op = "storage.students.update"
        stmt = (
            update(StudentModel)
            .where(StudentModel.id == student.id)
            .values(name=student.name, email=student.email)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                await session.commit()
        except STORE_ERRORS as e:
            raise PersistenceError(op, str(e)) from e

        if result.rowcount == 0:
            raise NotFoundError(op, student.id)

    async def delete(self, student_id: int) -> None:
        op = "storage.students.delete"
        stmt = (
            delete(StudentModel)
            .where(StudentModel.id == student_id)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                await session.commit()
        except STORE_ERRORS as e:
            raise PersistenceError(op, str(e)) from e

        if result.rowcount == 0:
            logger.debug(f"Delete matched no student with id {student_id}")
