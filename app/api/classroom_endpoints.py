"""
app.api.classroom_endpoints
~~~~~~~~~~~~~~~~~~~~~~~~~~~

课堂 REST 接口 —— 只读查询当前的课堂与在线成员。

路由前缀 ``/api``。

端点:
  - ``GET /classes``                          → 获取活跃课堂列表
  - ``GET /classes/{class_id}``               → 获取课堂摘要
  - ``GET /classes/{class_id}/participants``  → 获取课堂在线成员快照
"""
from fastapi import APIRouter, Depends, Request

from app.api.deps import get_classroom_hub
from app.core.rate_limit import limiter
from app.schemas.api_response import ApiResponse
from app.schemas.classroom_events import ClassInfoData, Participant
from app.services.classroom_hub import ClassroomHub

router: APIRouter = APIRouter()


@router.get("/classes", summary="获取活跃课堂列表", response_model=ApiResponse[list[ClassInfoData]])
@limiter.limit("10/second")
async def list_classes(request: Request, hub: ClassroomHub = Depends(get_classroom_hub)):
    """返回当前至少有一位成员的课堂列表。"""
    return ApiResponse.ok(data=hub.directory.list_rooms())


@router.get("/classes/{class_id}", summary="获取课堂摘要", response_model=ApiResponse[ClassInfoData])
@limiter.limit("10/second")
async def class_info(request: Request, class_id: str, hub: ClassroomHub = Depends(get_classroom_hub)):
    """返回指定课堂的在线人数与老师人数。

    课堂不存在时返回零计数，而不是 404（课堂本身没有创建步骤）。

    Args:
        request: FastAPI Request 对象（用于限流判断）。
        class_id: 课堂 ID。
    """
    return ApiResponse.ok(data=hub.directory.room_info(class_id))


@router.get(
    "/classes/{class_id}/participants",
    summary="获取课堂在线成员",
    response_model=ApiResponse[list[Participant]],
    response_model_by_alias=True,
)
@limiter.limit("10/second")
async def class_participants(
    request: Request,
    class_id: str,
    hub: ClassroomHub = Depends(get_classroom_hub),
):
    """返回课堂在线成员快照，与 ``participants-update`` 推送的内容一致。"""
    return ApiResponse.ok(data=hub.directory.members_of(class_id))
