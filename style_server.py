import asyncio
import itertools
from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Optional, Tuple

from aiohttp import web
from loguru import logger

ScriptedResponse = Tuple[int, Any]

STYLE_SCORES = {
    "avg_sentence_length": 12.5,
    "avg_word_length": 4.2,
    "complexity_score": 31.0,
    "readability_score": 68.0,
    "sentence_count": 2,
    "vocabulary_score": 55.0,
    "word_count": 25,
    "overall_score": 74.0,
}

STYLE_ISSUES = [
    {
        "original": "utilize",
        "char_index": 4,
        "subcategory": "complex_word",
        "category": "simple_vocab",
        "suggestion": "use",
    },
    {
        "original": "alot",
        "char_index": 18,
        "subcategory": "spelling",
        "category": "grammar",
        "suggestion": "a lot",
    },
]


class StyleServer:
    """In-process stand-in for the style analysis service.

    Workflows complete after ``pending_polls`` "running" status reads. Any
    route can be scripted with ``script()``; the last scripted response for a
    route repeats forever.
    """

    def __init__(
        self,
        pending_polls: int = 0,
        fail_workflows: bool = False,
        api_key: str = "test-api-key",
    ):
        self.pending_polls = pending_polls
        self.fail_workflows = fail_workflows
        self.api_key = api_key
        self.latency = 0.0
        self.requests: List[Tuple[str, str]] = []
        self.forms: List[Dict[str, Any]] = []
        self.poll_counts: Dict[str, int] = defaultdict(int)
        self.style_guides: Dict[str, Dict[str, Any]] = {}
        self._scripts: Dict[Tuple[str, str], Deque[ScriptedResponse]] = {}
        self._ids = itertools.count(1)
        self._runner: Optional[web.AppRunner] = None
        self.logger = logger

        self.app = web.Application(middlewares=[self._record, self._scripted, self._auth])
        for resource in ("/v1/rewrites", "/v1/checks"):
            self.app.router.add_post(f"{resource}/", self.handle_submit)
            self.app.router.add_get(f"{resource}/{{workflow_id}}", self.handle_status)
        for resource in ("/v1/style/checks", "/v1/style/suggestions", "/v1/style/rewrites"):
            self.app.router.add_post(resource, self.handle_submit)
            self.app.router.add_get(f"{resource}/{{workflow_id}}", self.handle_status)
        self.app.router.add_get("/v1/style-guides", self.handle_list_guides)
        self.app.router.add_post("/v1/style-guides", self.handle_create_guide)
        self.app.router.add_get("/v1/style-guides/{guide_id}", self.handle_get_guide)
        self.app.router.add_patch("/v1/style-guides/{guide_id}", self.handle_update_guide)
        self.app.router.add_delete("/v1/style-guides/{guide_id}", self.handle_delete_guide)
        self.app.router.add_get("/internal/v1/constants", self.handle_constants)
        self.app.router.add_post("/internal/v1/demo-feedback", self.handle_feedback)

    def script(self, method: str, path: str, responses: List[ScriptedResponse]) -> None:
        self._scripts[(method.upper(), path)] = deque(responses)

    def count(self, method: str, path: str) -> int:
        return self.requests.count((method.upper(), path))

    @web.middleware
    async def _record(self, request: web.Request, handler):
        self.requests.append((request.method, request.path))
        if self.latency:
            await asyncio.sleep(self.latency)
        return await handler(request)

    @web.middleware
    async def _scripted(self, request: web.Request, handler):
        queue = self._scripts.get((request.method, request.path))
        if not queue:
            return await handler(request)

        status, body = queue.popleft() if len(queue) > 1 else queue[0]
        self.logger.info(f"Scripted {status} for {request.method} {request.path}")
        if body is None:
            return web.Response(status=status)
        if isinstance(body, str):
            return web.Response(status=status, text=body, content_type="text/plain")
        return web.json_response(body, status=status)

    @web.middleware
    async def _auth(self, request: web.Request, handler):
        bearer = request.headers.get("Authorization") == f"Bearer {self.api_key}"
        if request.headers.get("x-api-key") != self.api_key and not bearer:
            return web.json_response({"detail": "Could not validate credentials"}, status=401)
        return await handler(request)

    async def handle_submit(self, request: web.Request) -> web.Response:
        form = await request.post()
        self.forms.append(
            {
                key: (value.file.read() if isinstance(value, web.FileField) else value)
                for key, value in form.items()
            }
        )
        workflow_id = f"wf-{next(self._ids)}"
        self.logger.info(f"Accepted {request.path} as {workflow_id}")
        return web.json_response({"workflow_id": workflow_id, "status": "queued"})

    async def handle_status(self, request: web.Request) -> web.Response:
        workflow_id = request.match_info["workflow_id"]
        self.poll_counts[workflow_id] += 1

        if self.poll_counts[workflow_id] <= self.pending_polls:
            self.logger.info(f"Returning running status for {workflow_id}")
            return web.json_response({"workflow_id": workflow_id, "status": "running"})

        if self.fail_workflows:
            self.logger.info(f"Returning failed status for {workflow_id}")
            return web.json_response(
                {"workflow_id": workflow_id, "status": "failed", "error_message": "Processing failed"}
            )

        self.logger.info(f"Returning completed status for {workflow_id}")
        return web.json_response(self._completed_body(request.path, workflow_id))

    def _completed_body(self, path: str, workflow_id: str) -> Dict[str, Any]:
        if path.startswith("/v1/style/"):
            body = {
                "workflow_id": workflow_id,
                "status": "completed",
                "style_guide_id": "sg-microsoft",
                "scores": STYLE_SCORES,
                "issues": STYLE_ISSUES,
                "check_options": {
                    "style_guide": {"id": "sg-microsoft", "name": "microsoft"},
                    "dialect": "american_english",
                    "tone": "formal",
                },
            }
            if path.startswith("/v1/style/rewrites/"):
                body["rewrite"] = "We use a lot of words."
            return body

        return {
            "workflow_id": workflow_id,
            "status": "completed",
            "result": {
                "original_text": "We utilize alot of words.",
                "merged_text": "We use a lot of words.",
                "errors": [],
                "results": [],
            },
        }

    async def handle_list_guides(self, request: web.Request) -> web.Response:
        return web.json_response(list(self.style_guides.values()))

    async def handle_create_guide(self, request: web.Request) -> web.Response:
        form = await request.post()
        upload = form.get("file_upload")
        name = form.get("name")
        if not isinstance(upload, web.FileField) or not name:
            return web.json_response(
                {"message": "Missing required fields: file_upload and name"}, status=400
            )
        guide_id = f"sg-{next(self._ids)}"
        self.style_guides[guide_id] = {
            "id": guide_id,
            "name": name,
            "created_at": "2025-06-20T11:46:30.537Z",
            "created_by": "test-user",
            "status": "running",
        }
        return web.json_response(self.style_guides[guide_id])

    async def handle_get_guide(self, request: web.Request) -> web.Response:
        guide = self.style_guides.get(request.match_info["guide_id"])
        if guide is None:
            return web.json_response({"message": "Style guide not found"}, status=404)
        return web.json_response(guide)

    async def handle_update_guide(self, request: web.Request) -> web.Response:
        guide = self.style_guides.get(request.match_info["guide_id"])
        if guide is None:
            return web.json_response({"message": "Style guide not found"}, status=404)
        body = await request.json()
        if not body.get("name"):
            return web.json_response({"message": "Missing required field: name"}, status=400)
        guide.update(name=body["name"], updated_by="test-user")
        return web.json_response(guide)

    async def handle_delete_guide(self, request: web.Request) -> web.Response:
        if self.style_guides.pop(request.match_info["guide_id"], None) is None:
            return web.json_response({"message": "Style guide not found"}, status=404)
        return web.Response(status=204)

    async def handle_constants(self, request: web.Request) -> web.Response:
        return web.json_response(
            {
                "dialects": ["american_english", "british_oxford", "canadian_english"],
                "tones": ["academic", "business", "formal", "informal"],
                "style_guides": {"sg-ap": "ap", "sg-chicago": "chicago"},
                "colors": {
                    "green": {"value": "rgb(120, 253, 134)", "min_score": 80},
                    "yellow": {"value": "rgb(246, 240, 104)", "min_score": 60},
                    "red": {"value": "rgb(235, 94, 94)", "min_score": 0},
                },
            }
        )

    async def handle_feedback(self, request: web.Request) -> web.Response:
        self.forms.append(await request.json())
        return web.json_response({"success": True})

    async def start(self, port: int = 0) -> int:
        """Start serving on 127.0.0.1 and return the bound port"""
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "127.0.0.1", port)
        await site.start()
        bound_port = self._runner.addresses[0][1]
        self.logger.info(f"Server started on port {bound_port}")
        return bound_port

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
