import asyncio
import json
import sys

import websockets

# Manual smoke run against a local server:
#   uvicorn interviewiq.main:app --port 9010
#   python ws_test_client.py "Backend Engineer"


async def main(role: str):
    url = "ws://127.0.0.1:9010/ws/interview"
    async with websockets.connect(url, max_size=None) as ws:
        print(await ws.recv())

        await ws.send(json.dumps({"type": "SETUP", "role": role}))
        ready = json.loads(await ws.recv())
        print(json.dumps({k: v for k, v in ready.items() if k != "questions"}))
        for index, question in enumerate(ready.get("questions") or []):
            print(f"  Q{index + 1}: {question}")

        total = int(ready.get("totalQuestions") or 0)
        for index in range(total + 1):
            await ws.send(json.dumps({"type": "REQUEST_QUESTION", "questionIndex": index}))
            reply = json.loads(await ws.recv())
            audio = reply.pop("audioData", "")
            print(reply["type"], reply.get("questionIndex"), f"audio_chars={len(audio)}")

        await ws.send(json.dumps({"type": "INTERVIEW_COMPLETE"}))
        print(await ws.recv())


asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "Software Engineer"))
