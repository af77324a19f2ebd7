"""JSON response rendering"""

from fastapi.responses import JSONResponse
from typing import Any
import json


class PrettyJSONResponse(JSONResponse):
    """JSON response with an indented body"""

    def render(self, content: Any) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            indent=2,
        ).encode("utf-8")
