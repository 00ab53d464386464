import sys
import logging
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent))

from storykit import StoryRuntime


def main(config_path: str = "game/config.json"):
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger("DialogueVerification")

    runtime = StoryRuntime.from_file(config_path)

    logger.info("Loading dialogue and scripts...")
    failures = runtime.load()

    for error in runtime.errors:
        logger.error(f"  {type(error).__name__}: {error}")

    logger.info(
        f"{len(runtime.library.graphs)} dialogue asset(s), "
        f"{len(runtime.scripts.loaded)} script(s) loaded."
    )

    start = runtime.config.start_dialogue
    if not runtime.library.has_node(start):
        logger.error(f"Start dialogue node '{start}' is not defined")
        failures += 1

    if failures:
        logger.error(f"VERIFICATION FAILED: {failures} problem(s).")
        sys.exit(1)

    logger.info("VERIFICATION SUCCESSFUL: All dialogue and scripts loaded.")


if __name__ == "__main__":
    main(*sys.argv[1:2])
