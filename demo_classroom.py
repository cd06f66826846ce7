"""
课堂信令手动验证脚本。

要求: 运行前请确保服务已在 http://127.0.0.1:3000 启动（``python -m app.main``）。

流程: 老师与学生先后加入同一课堂，老师发送 offer、画一笔、发一条聊天，
学生断开后老师应收到新的在线列表与离开通知。
"""
import asyncio
import json

from websockets.asyncio.client import connect

URI = "ws://127.0.0.1:3000/ws/classroom"
CLASS_ID = "demo-class"


async def send(websocket, event, data):
    await websocket.send(json.dumps({"event": event, "data": data}))


async def drain(websocket, who, timeout=1.0):
    """打印在 timeout 内收到的所有消息。"""
    while True:
        try:
            raw = await asyncio.wait_for(websocket.recv(), timeout=timeout)
        except asyncio.TimeoutError:
            return
        message = json.loads(raw)
        print(f"   [{who}] <- {message['event']}: {message['data']}")


async def main():
    print("=" * 50)
    print(" 验证课堂信令与广播 ")
    print("=" * 50)

    try:
        async with connect(URI) as teacher:
            await send(teacher, "join-class", {"classId": CLASS_ID, "name": "Alice", "role": "teacher"})
            await drain(teacher, "Alice")

            async with connect(URI) as student:
                await send(student, "join-class", {"classId": CLASS_ID, "name": "Bob", "role": "student"})
                await drain(teacher, "Alice")
                await drain(student, "Bob")

                print("\n -> Alice 发送 offer / 笔画 / 聊天")
                await send(teacher, "webrtc-offer", {"classId": CLASS_ID, "sdp": {"type": "offer", "sdp": "v=0"}})
                await send(teacher, "draw", {
                    "classId": CLASS_ID,
                    "line": {"x0": 0.1, "y0": 0.1, "x1": 0.5, "y1": 0.5, "color": "#e11d48"},
                })
                await send(teacher, "chat-message", {"classId": CLASS_ID, "from": "Alice", "text": "大家好"})
                await drain(student, "Bob")
                await drain(teacher, "Alice")

            print("\n -> Bob 已断开")
            await drain(teacher, "Alice")
    except OSError as e:
        print(f"连接失败，请确认服务已启动: {e}")

    print("\n🏁 验证结束。")


if __name__ == "__main__":
    asyncio.run(main())
