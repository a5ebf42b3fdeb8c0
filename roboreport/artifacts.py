from pathlib import Path

from roboreport.errors import ArtifactWriteError


def ensure_directory(path: Path | str) -> Path:
    """Create ``path`` (and parents) if missing and return it as an absolute path."""
    directory = Path(path).expanduser().resolve()
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def write_artifact(name: str, path: Path | str, content: str) -> Path:
    """
    Write ``content`` to ``path`` as UTF-8.

    Raises:
        ArtifactWriteError: If the directory cannot be created or the file cannot be written.
    """
    target = Path(path).expanduser().resolve()
    try:
        ensure_directory(target.parent)
        target.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ArtifactWriteError(name, target, e) from e
    return target
