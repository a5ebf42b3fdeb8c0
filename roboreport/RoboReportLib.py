import html  # noqa: N999
from pathlib import Path

from robot.api import logger
from robot.api.deco import keyword, library

from roboreport.listener import infer_attachment_type
from roboreport.models import AttachmentType


@library(scope="GLOBAL", version="0.1.0")
class RoboReportLib:
    """Robot Framework library for attaching files to the current test in RoboReport."""

    @keyword("Attach File To Report")
    def attach_file_to_report(self, path: str, name: str | None = None, type: str | None = None):  # noqa: A002
        """
        Attach ``path`` to the running test.

        ``type`` is one of ``screenshot``, ``video``, ``trace`` or ``log``; when omitted it is
        inferred from the file name. The link is written to the Robot log and picked up by
        ``roboreport.listener``.
        """
        name = name or Path(path).name
        attachment_type = AttachmentType(type.lower()) if type else infer_attachment_type(name)
        logger.info(
            f'<a href="{html.escape(str(path))}" data-roboreport-type="{attachment_type.value}" '
            f'data-roboreport-name="{html.escape(name)}">{html.escape(name)}</a>',
            html=True,
        )
        return attachment_type.value
