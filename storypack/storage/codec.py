from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Type, TypeVar

from pydantic import BaseModel, ValidationError

from storypack.errors import DocumentError, MissingDocumentError

ModelT = TypeVar("ModelT", bound=BaseModel)


def serialize(model: BaseModel) -> str:
    payload = model.model_dump(mode="json")
    return json.dumps(payload, indent=2, ensure_ascii=False)


def deserialize(text: str | bytes, model_cls: Type[ModelT], *, path: Path | None = None) -> ModelT:
    try:
        return model_cls.model_validate_json(text)
    except ValidationError as exc:
        where = f" in {path}" if path else ""
        raise DocumentError(
            f"{model_cls.__name__} document invalid{where}: "
            f"{exc.errors(include_url=False)}",
            path=path,
        ) from exc


def read_model(path: str | Path, model_cls: Type[ModelT]) -> ModelT:
    path = Path(path)
    if not path.is_file():
        raise MissingDocumentError(
            f"{model_cls.__name__} document not found: {path}", path=path
        )
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentError(f"cannot read {path}: {exc}", path=path) from exc
    return deserialize(text, model_cls, path=path)


def write_model(path: str | Path, model: BaseModel) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize(model), encoding="utf-8")
    return path


async def read_model_async(path: str | Path, model_cls: Type[ModelT]) -> ModelT:
    return await asyncio.to_thread(read_model, path, model_cls)


async def write_model_async(path: str | Path, model: BaseModel) -> Path:
    return await asyncio.to_thread(write_model, path, model)


__all__ = [
    "deserialize",
    "read_model",
    "read_model_async",
    "serialize",
    "write_model",
    "write_model_async",
]
