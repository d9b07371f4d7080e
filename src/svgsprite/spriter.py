"""Sprite compilation run: ingestion, per-shape processing and mode rendering."""
from __future__ import annotations

import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from functools import cmp_to_key
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Union

from .config import ModeOptions, SpriterConfig
from .errors import CompilationCancelled, RenderError, ShapeError, SpriteError
from .logging_config import verbose
from .markup import with_declarations
from .modes import renderer_for
from .namespace import namespace_token
from .result import Artifact, CompileResult
from .shape import Shape
from .transforms import resolve_pipeline


class SVGSpriter:
    """Collects shapes and compiles them into the configured sprite modes."""

    def __init__(self, config: Union[SpriterConfig, Mapping[str, Any], None] = None) -> None:
        if isinstance(config, SpriterConfig):
            self.config = config
        else:
            self.config = SpriterConfig.from_mapping(config)
        self.log = self.config.log
        self._pipeline = resolve_pipeline(self.config.shape.transform, self.log)
        self._shapes: Dict[str, Shape] = {}

    @property
    def shapes(self) -> List[Shape]:
        return list(self._shapes.values())

    def add(
        self,
        name: str,
        source: Union[str, bytes],
        *,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> Shape:
        """Ingest one SVG document; ``name`` is its path relative to the source root."""
        shape = Shape.from_source(
            name,
            source,
            width=width,
            height=height,
            id_separator=self.config.shape.id_separator,
            id_whitespace=self.config.shape.id_whitespace,
        )
        if shape.id in self._shapes:
            self.log.warning('Replacing previously added shape "%s"', shape.id)
        self._shapes[shape.id] = shape
        self.log.debug('Added shape "%s" as "%s"', shape.base, shape.id)
        return shape

    def compile(self, *, cancel: Optional[threading.Event] = None) -> CompileResult:
        """
        Run the full pipeline over a private copy of the ingested shapes.

        Shape-scoped failures are collected on the result; a cancelled run
        raises ``CompilationCancelled`` and yields no partial output.
        """
        result = CompileResult()
        verbose(self.log, "Compiling %d shapes into %d modes", len(self._shapes), len(self.config.mode))
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            shapes = self._transform(executor, result, cancel)
            shapes.sort(key=cmp_to_key(self.config.shape.sort))
            shapes = self._namespace(executor, shapes, result, cancel)
            result.shapes = shapes

            if self.config.shape.dest is not None:
                result.artifacts["shapes"] = self._intermediate_shapes(shapes)

            futures = {
                executor.submit(self._render, options, shapes): key
                for key, options in self.config.mode.items()
            }
            rendered = self._gather(futures, cancel)

        for key in self.config.mode:
            artifacts, errors = rendered[key]
            result.errors.extend(errors)
            if artifacts:
                result.artifacts[key] = artifacts
        verbose(self.log, "Finished compilation with status %s", result.status)
        return result

    def _gather(self, futures: Dict[Future, str], cancel: Optional[threading.Event]) -> Dict[str, Any]:
        done: Dict[str, Any] = {}
        for future in as_completed(futures):
            self._check_cancelled(cancel, futures)
            done[futures[future]] = future.result()
        self._check_cancelled(cancel, futures)
        return done

    def _check_cancelled(self, cancel: Optional[threading.Event], futures: Iterable[Future]) -> None:
        if cancel is None or not cancel.is_set():
            return
        for pending in futures:
            pending.cancel()
        self.log.warning("Compilation cancelled; discarding partial results")
        raise CompilationCancelled("sprite compilation was cancelled")

    def _transform(
        self, executor: ThreadPoolExecutor, result: CompileResult, cancel: Optional[threading.Event]
    ) -> List[Shape]:
        futures = {executor.submit(self._transform_shape, shape): shape.id for shape in self.shapes}
        shapes = []
        for shape_id, outcome in self._gather(futures, cancel).items():
            if isinstance(outcome, SpriteError):
                result.errors.append(outcome)
            else:
                shapes.append(outcome)
        return shapes

    def _transform_shape(self, source: Shape) -> Union[Shape, SpriteError]:
        shape = source.copy()
        for transform in self._pipeline:
            try:
                shape.root = transform.apply(shape.root)
            except Exception as exc:
                self.log.error('Transform "%s" failed for shape "%s": %s', transform.name, shape.id, exc)
                return ShapeError(f'transform "{transform.name}" failed: {exc}', shape=shape.id)
        shape.refresh_dimensions()
        self.log.debug('Transformed shape "%s"', shape.id)
        return shape

    def _namespace(
        self,
        executor: ThreadPoolExecutor,
        shapes: List[Shape],
        result: CompileResult,
        cancel: Optional[threading.Event],
    ) -> List[Shape]:
        # Tokens follow sorted position, never completion order.
        shape_ids = frozenset(shape.id for shape in shapes)
        futures = {
            executor.submit(
                self._namespace_shape,
                shape,
                namespace_token(index, self.config.svg.namespace_id_prefix),
                shape_ids,
            ): shape.id
            for index, shape in enumerate(shapes)
        }
        outcomes = self._gather(futures, cancel)
        finalized = []
        for shape in shapes:
            outcome = outcomes[shape.id]
            if isinstance(outcome, SpriteError):
                result.errors.append(outcome)
            else:
                finalized.append(outcome)
        return finalized

    def _namespace_shape(
        self, shape: Shape, token: str, shape_ids: FrozenSet[str]
    ) -> Union[Shape, SpriteError]:
        svg = self.config.svg
        try:
            shape.apply_namespace(
                token,
                ids=svg.namespace_ids,
                classnames=svg.namespace_classnames,
                reserved=shape_ids,
            )
            shape.apply_meta(self.config.shape.meta)
            shape.resolve_alignment(self.config.shape.align)
        except Exception as exc:
            self.log.error('Namespacing failed for shape "%s": %s', shape.id, exc)
            return ShapeError(f"namespacing failed: {exc}", shape=shape.id)
        return shape

    def _render(self, options: ModeOptions, shapes: List[Shape]):
        renderer = renderer_for(self.config, options, self.log)
        try:
            artifacts = renderer.render(shapes)
        except RenderError as exc:
            self.log.error('Mode "%s" failed: %s', options.key, exc)
            return {}, renderer.errors + [exc]
        except Exception as exc:
            self.log.error('Mode "%s" failed: %s', options.key, exc)
            error = RenderError(f"failed to render mode: {exc}", mode=options.key)
            return {}, renderer.errors + [error]
        verbose(self.log, 'Rendered mode "%s" (%s)', options.key, options.mode)
        return artifacts, renderer.errors

    def _intermediate_shapes(self, shapes: Iterable[Shape]) -> Dict[str, Artifact]:
        svg = self.config.svg
        relative = Path(os.path.relpath(self.config.shape.dest, self.config.dest)).as_posix()
        artifacts = {}
        for shape in shapes:
            path = f"{relative}/{shape.base}.svg" if relative != "." else f"{shape.base}.svg"
            artifacts[shape.id] = Artifact(
                path=path,
                dest_path=self.config.dest / path,
                contents=with_declarations(
                    shape.to_string(), svg.xml_declaration, svg.doctype_declaration
                ),
            )
        return artifacts
