from typing import Protocol

from students_crud.schemas.student import Student, StudentIn


class StudentStorage(Protocol):
    """
    The four operations the HTTP layer needs from a record store.

    Every operation is a coroutine: cancelling the awaiting task abandons
    the in-flight database call. Failures are reported with
    `NotFoundError` (no matching row) or `PersistenceError`.
    """

    async def create(self, student: StudentIn) -> int:
        """Insert a new student and return its store-assigned id."""
        ...

    async def read(self, student_id: int) -> Student:
        ...

    async def update(self, student: Student) -> None:
        """Overwrite name and email of the student with `student.id`."""
        ...

    async def delete(self, student_id: int) -> None:
        """Remove the student; a missing row is not an error."""
        ...
