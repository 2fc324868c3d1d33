"""Minimal renderer worker speaking the JSON-lines protocol, for tests.

Init options understood:
    fail_init: answer the init request with an error
    images: number of images per render request (default 1)
    omit_preview_id: leave preview_id out of results
Render requests whose method_fqn ends in ``.crash`` kill the worker and
those ending in ``.error`` get an error response.
"""

import json
import sys
from pathlib import Path

from PIL import Image


def reply(message: dict) -> None:
    sys.stdout.write(json.dumps(message) + "\n")
    sys.stdout.flush()


def main() -> None:
    options: dict = {}
    for line in sys.stdin:
        request = json.loads(line)
        kind = request["type"]
        if kind == "init":
            options = request.get("options", {})
            if options.get("fail_init"):
                reply({"status": "error", "message": "no fonts"})
                return
            reply({"status": "ready"})
        elif kind == "render":
            screenshot = request["screenshot"]
            method = screenshot["method_fqn"]
            if method.endswith(".crash"):
                sys.exit(3)
            if method.endswith(".error"):
                reply({"status": "error", "message": f"cannot render {method}"})
                continue
            results = []
            for index in range(options.get("images", 1)):
                image_path = f"{screenshot['preview_id']}_{index}.png"
                out = Path(request["output_folder"]) / image_path
                out.parent.mkdir(parents=True, exist_ok=True)
                Image.new("RGBA", (8, 8), (0, 128, 0, 255)).save(out, format="PNG")
                result = {"image_path": image_path}
                if not options.get("omit_preview_id"):
                    result["preview_id"] = screenshot["preview_id"]
                results.append(result)
            reply({"status": "ok", "results": results})
        elif kind == "shutdown":
            return


if __name__ == "__main__":
    main()
