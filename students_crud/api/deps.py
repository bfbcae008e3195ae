from fastapi import Request
from students_crud.services.student.storage import StudentStorage


def get_store(request: Request) -> StudentStorage:
    """
    Dependency returning the record store the application was built with.
    The store is set once in create_app / startup and never replaced.
    """
    return request.app.state.store
