import logging
import os
import sys

logger = logging.getLogger("aiozset")
cursor_logger = logger.getChild("cursor")

if os.environ.get("AIOZSET_DEBUG"):
    logger.setLevel(logging.DEBUG)
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
    )
    logger.addHandler(handler)
    os.environ["AIOZSET_DEBUG"] = ""
