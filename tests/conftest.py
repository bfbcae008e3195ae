from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine

from students_crud.core.database import Base, create_session_maker
from students_crud.core.exceptions import NotFoundError
from students_crud.main import create_app
from students_crud.schemas.student import Student, StudentIn
from students_crud.services.student.student import StudentStore

ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "alembic"


def sqlite_url(path) -> str:
    return f"sqlite+aiosqlite:///{path}"


class FakeStudentStore:
    """In-memory StudentStorage that records every call it receives."""

    def __init__(self):
        self.students: dict[int, Student] = {}
        self.calls: list[tuple] = []
        self.error: Exception | None = None
        self._next_id = 1

    def _record(self, *call) -> None:
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    async def create(self, student: StudentIn) -> int:
        self._record("create", student)
        student_id = self._next_id
        self._next_id += 1
        self.students[student_id] = Student(id=student_id, **student.model_dump())
        return student_id

    async def read(self, student_id: int) -> Student:
        self._record("read", student_id)
        if student_id not in self.students:
            raise NotFoundError("fake.read", student_id)
        return self.students[student_id]

    async def update(self, student: Student) -> None:
        self._record("update", student)
        if student.id not in self.students:
            raise NotFoundError("fake.update", student.id)
        self.students[student.id] = student

    async def delete(self, student_id: int) -> None:
        self._record("delete", student_id)
        self.students.pop(student_id, None)


@pytest.fixture
def store() -> FakeStudentStore:
    return FakeStudentStore()


@pytest.fixture
def client(store) -> TestClient:
    return TestClient(create_app(store=store))


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(sqlite_url(tmp_path / "students.db"))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def student_store(engine) -> StudentStore:
    return StudentStore(create_session_maker(engine))
