"""Lambda-style handler for collection generation."""

import json
import logging
from pathlib import Path

from ..clients import is_simulated
from ..config import Settings
from ..engine import CollectionEngine, RunResult
from ..errors import PipelineError
from ..utils import to_slug

logger = logging.getLogger(__name__)


def handler(event, context, engine: CollectionEngine | None = None):
    """
    Generate a collection for a theme.

    Input payload:
    {
        "prompt": "cyberpunk samurai",
        "owner_address": "0xabc...",
        "supply": 5,
        "variations": 2,
        "output_dir": "out/"        (optional)
    }

    Output: project id, plan, trait counts and one composite per character.
    """
    if "Records" in event:
        body = json.loads(event["Records"][0]["body"])
    else:
        body = json.loads(event.get("body", "{}"))

    if not body.get("prompt"):
        return {
            "statusCode": 400,
            "body": json.dumps({"error": "Missing 'prompt' field"}),
        }

    variations = body.get("variations")
    if variations is not None:
        try:
            variations = int(variations)
        except (TypeError, ValueError):
            variations = 0
        if variations < 1:
            return {
                "statusCode": 400,
                "body": json.dumps({"error": f"Invalid 'variations': {body['variations']!r}"}),
            }

    try:
        engine = engine or CollectionEngine.from_settings(Settings.from_env())
        result = engine.run(
            prompt=body["prompt"],
            owner_address=body.get("owner_address", "local"),
            supply=body.get("supply"),
            variations=variations,
        )
    except PipelineError as e:
        logger.error("Pipeline failed: %s", e)
        return {
            "statusCode": 500,
            "body": json.dumps({"error": str(e), "type": type(e).__name__, **e.context()}),
        }

    files = []
    if body.get("output_dir"):
        files = write_outputs(result, Path(body["output_dir"]))

    # Multi-Status when some traits failed but the collection still finished
    status_code = 207 if result.traits.failures else 200

    return {
        "statusCode": status_code,
        "body": json.dumps({
            "project_id": result.project.id,
            "name": result.project.name,
            "status": result.project.status.value,
            "simulated": is_simulated(engine.assets.image),
            "config": result.config.to_dict(),
            "manifest": result.manifest.to_list(),
            "traits_saved": len(result.traits.saved),
            "traits_reused": len(result.traits.reused),
            "errors": [f.to_dict() for f in result.traits.failures] or None,
            "minted": [
                {"name": m.name, "attributes": m.attributes, "rarity_score": m.rarity_score}
                for m in result.minted
            ],
            "files": files,
        }),
    }


def write_outputs(result: RunResult, output_dir: Path) -> list[str]:
    """Write base and composite images to output_dir, return file paths."""
    output_dir.mkdir(parents=True, exist_ok=True)
    slug = to_slug(result.project.name)

    files = []
    base_path = output_dir / f"{slug}_base.png"
    base_path.write_bytes(result.base.image_data)
    files.append(str(base_path))

    for i, asset in enumerate(result.minted, start=1):
        if not asset.image:
            continue
        path = output_dir / f"{slug}_{i}.png"
        path.write_bytes(asset.image)
        files.append(str(path))
    return files


# Local testing
if __name__ == "__main__":
    import sys

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    if len(sys.argv) < 2:
        print("Usage: python -m pfpforge.handlers.worker <prompt> [supply] [output_dir]")
        print()
        print("Example:")
        print('  python -m pfpforge.handlers.worker "cyberpunk samurai" 5 out/')
        sys.exit(1)

    test_input = {"prompt": sys.argv[1]}
    if len(sys.argv) > 2:
        test_input["supply"] = int(sys.argv[2])
    if len(sys.argv) > 3:
        test_input["output_dir"] = sys.argv[3]

    print("Running with input:")
    print(json.dumps(test_input, indent=2))
    print()

    result = handler({"body": json.dumps(test_input)}, None)
    print("\nResult:")
    print(json.dumps(json.loads(result["body"]), indent=2))
