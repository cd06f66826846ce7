from fastapi import Request

from app.services.classroom_hub import ClassroomHub


def get_classroom_hub(request: Request) -> ClassroomHub:
    return request.app.state.classroom_hub
