import asyncio
import json
import mimetypes
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(help="img2insight: image → cache → model → validated JSON")


@app.command()
def version():
    """Show version."""
    import importlib.metadata as md

    print(md.version("img2insight"))


@app.command()
def analyze(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    lang: Optional[str] = typer.Option(None, "--lang", "-l", help="en or ja"),
    mime: Optional[str] = typer.Option(None, help="override the guessed MIME type"),
):
    """Analyze one image and print the result as JSON."""
    from worker.app.errors import AnalysisError
    from worker.app.models import Language
    from worker.app.services.hasher import read_image_bytes
    from worker.app.services.images import check_size
    from worker.app.services.pipeline import get_pipeline

    pipeline = get_pipeline()
    try:
        language = Language.parse(lang) if lang else pipeline.language
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--lang")

    mime_type = mime or mimetypes.guess_type(path.name)[0] or ""

    async def _run():
        check_size(path.stat().st_size, pipeline.max_file_bytes)
        with path.open("rb") as f:
            data = await read_image_bytes(f, max_bytes=pipeline.max_file_bytes)
        return await pipeline.run(data, mime_type, language)

    try:
        outcome = asyncio.run(_run())
    except AnalysisError as e:
        typer.echo(e.message_for(language), err=True)
        raise typer.Exit(code=1)

    print(json.dumps(outcome.model_dump(mode="json"), ensure_ascii=False, indent=2))


@app.command("clear-cache")
def clear_cache():
    """Remove every cached analysis result."""
    from worker.app.services.pipeline import get_pipeline

    removed = get_pipeline().clear_cache()
    print(f"removed {removed} cached result(s)")


if __name__ == "__main__":
    app()
