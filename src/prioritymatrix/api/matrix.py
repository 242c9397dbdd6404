"""Priority matrix API endpoints: classification, statistics and moves."""

import logging
import time
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from prioritymatrix.api.dependencies import (
    get_classifier,
    get_date_parser,
    get_gateway,
    get_settings,
    get_stats_calculator,
    get_task_date_extractor,
    require_vault_path,
)
from prioritymatrix.config import Settings
from prioritymatrix.engine.classifier import MatrixClassifier
from prioritymatrix.engine.dates import clean_task_text
from prioritymatrix.engine.fields import extract_property_value
from prioritymatrix.models import (
    BulkMoveRequest,
    BulkMoveResponse,
    ClassifiedSection,
    ClearNoteRequest,
    FilterMode,
    ItemType,
    MatrixConfig,
    MatrixStats,
    MoveRequest,
    MutationResult,
    Note,
    NoteItem,
    SectionResponse,
    SortMode,
    Task,
    TaskItem,
    ToggleTaskRequest,
    UnassignedResponse,
)
from prioritymatrix.settings import load_matrix_config
from prioritymatrix.vault.connector import VaultConnector

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/matrix", tags=["matrix"])

# Short TTL cache for vault items; dropped after every mutation
_cache: dict[str, object] = {"data": None, "ts": 0.0, "key": ""}
_CACHE_TTL = 5.0  # seconds


def invalidate_items() -> None:
    _cache["data"] = None


def _load_items(settings: Settings, config: MatrixConfig) -> tuple[list[Note], list[Task]]:
    """Read notes and tasks from the vault, with TTL cache."""
    vault_path = require_vault_path(settings)
    cache_key = f"{vault_path}|{'|'.join(config.excluded_folders)}"
    now = time.time()
    if (
        _cache["data"] is not None
        and (now - _cache["ts"]) < _CACHE_TTL  # type: ignore[operator]
        and _cache["key"] == cache_key
    ):
        return _cache["data"]  # type: ignore[return-value]

    notes, tasks = VaultConnector(vault_path, config.excluded_folders).read_items()
    # Task text may have changed on disk; stale extracted dates must go.
    get_task_date_extractor().clear()
    logger.info("Loaded %d notes and %d tasks from %s", len(notes), len(tasks), vault_path)

    _cache["data"] = (notes, tasks)
    _cache["ts"] = now
    _cache["key"] = cache_key
    return notes, tasks


def _load_config(settings: Settings) -> MatrixConfig:
    require_vault_path(settings)
    return load_matrix_config(settings.config_path)


def _with_overrides(
    config: MatrixConfig,
    search: str | None,
    sort_by: SortMode | None,
    filter_by: FilterMode | None,
) -> MatrixConfig:
    display = config.display.model_copy(
        update={
            k: v
            for k, v in {"search_query": search, "sort_by": sort_by, "filter_by": filter_by}.items()
            if v is not None
        }
    )
    return config.model_copy(update={"display": display})


def _note_item(note: Note, config: MatrixConfig) -> NoteItem:
    parser = get_date_parser()
    scheduling = config.scheduling
    raw_date = extract_property_value(note.frontmatter.get(scheduling.date_property_name))
    recurring = extract_property_value(note.frontmatter.get(scheduling.recurring_property_name))
    if isinstance(recurring, list):
        recurring = ", ".join(str(r) for r in recurring)
    return NoteItem(
        path=note.path,
        title=note.title,
        due_date=parser.format_date(raw_date),
        recurring=str(recurring) if recurring else "",
        overdue=parser.is_overdue(raw_date),
    )


def _task_item(task: Task) -> TaskItem:
    parser = get_date_parser()
    raw_date = get_task_date_extractor().extract(task.text)
    return TaskItem(
        key=task.key,
        file=task.file,
        line=task.line,
        text=task.text,
        title=clean_task_text(task.text),
        tags=task.tags,
        completed=task.completed,
        due_date=parser.format_date(raw_date),
        overdue=parser.is_overdue(raw_date),
    )


def _classify(
    settings: Settings,
    classifier: MatrixClassifier,
    search: str | None,
    sort_by: SortMode | None,
    filter_by: FilterMode | None,
) -> tuple[MatrixConfig, dict[str, ClassifiedSection]]:
    config = _with_overrides(_load_config(settings), search, sort_by, filter_by)
    notes, tasks = _load_items(settings, config)
    return config, classifier.classify(notes, tasks, config)


@router.get("", response_model=list[SectionResponse])
async def get_matrix(
    settings: Annotated[Settings, Depends(get_settings)],
    classifier: Annotated[MatrixClassifier, Depends(get_classifier)],
    search: str | None = None,
    sort_by: SortMode | None = None,
    filter_by: FilterMode | None = None,
) -> list[SectionResponse]:
    """Classify vault notes and tasks into the configured sections."""
    config, classified = _classify(settings, classifier, search, sort_by, filter_by)
    return [
        SectionResponse(
            key=key,
            title=result.section.title,
            subtitle=result.section.subtitle,
            color=result.section.color,
            position=result.section.position,
            notes=[_note_item(n, config) for n in result.notes],
            tasks=[_task_item(t) for t in result.tasks],
        )
        for key, result in classified.items()
    ]


@router.get("/stats", response_model=MatrixStats)
async def get_stats(
    settings: Annotated[Settings, Depends(get_settings)],
    classifier: Annotated[MatrixClassifier, Depends(get_classifier)],
    search: str | None = None,
    sort_by: SortMode | None = None,
    filter_by: FilterMode | None = None,
) -> MatrixStats:
    """Productivity statistics over the current classification."""
    config, classified = _classify(settings, classifier, search, sort_by, filter_by)
    return get_stats_calculator().compute(classified, config.scheduling)


@router.get("/unassigned", response_model=UnassignedResponse)
async def get_unassigned(
    settings: Annotated[Settings, Depends(get_settings)],
    classifier: Annotated[MatrixClassifier, Depends(get_classifier)],
    search: str = "",
    path: str = "",
    item_type: Annotated[ItemType, Query()] = "all",
) -> UnassignedResponse:
    """Notes and tasks that no section rule claims."""
    config = _load_config(settings)
    notes, tasks = _load_items(settings, config)
    unassigned = classifier.find_unassigned(notes, tasks, config, search, path, item_type)
    return UnassignedResponse(
        notes=[_note_item(n, config) for n in unassigned.notes],
        tasks=[_task_item(t) for t in unassigned.tasks],
    )


@router.post("/move", response_model=MutationResult)
async def move_item(
    req: MoveRequest,
    settings: Annotated[Settings, Depends(get_settings)],
) -> MutationResult:
    """Move a note or task into a section by rewriting its rule field."""
    gateway = get_gateway(settings)
    config = _load_config(settings)
    if req.section not in config.sections:
        raise HTTPException(status_code=404, detail=f"Unknown section: {req.section}")

    result = await gateway.move_item(req.item, req.section, config)
    invalidate_items()
    return result


@router.post("/bulk-move", response_model=BulkMoveResponse)
async def bulk_move(
    req: BulkMoveRequest,
    settings: Annotated[Settings, Depends(get_settings)],
) -> BulkMoveResponse:
    """Move several items into one section."""
    gateway = get_gateway(settings)
    config = _load_config(settings)
    if req.section not in config.sections:
        raise HTTPException(status_code=404, detail=f"Unknown section: {req.section}")

    results = await gateway.bulk_move(req.items, req.section, config)
    invalidate_items()
    return BulkMoveResponse(
        moved=sum(1 for r in results if r.ok),
        failed=[r for r in results if not r.ok],
    )


@router.post("/tasks/toggle", response_model=MutationResult)
async def toggle_task(
    req: ToggleTaskRequest,
    settings: Annotated[Settings, Depends(get_settings)],
) -> MutationResult:
    """Check or uncheck a task."""
    gateway = get_gateway(settings)
    result = await gateway.toggle_task_completion(req.file, req.line, req.completed)
    invalidate_items()
    return result


@router.post("/notes/clear", response_model=MutationResult)
async def clear_note(
    req: ClearNoteRequest,
    settings: Annotated[Settings, Depends(get_settings)],
) -> MutationResult:
    """Unassign a note by removing its matrix properties."""
    gateway = get_gateway(settings)
    names = req.property_names
    if names is None:
        config = _load_config(settings)
        names = [
            *config.rule_properties(),
            config.scheduling.date_property_name,
            config.scheduling.recurring_property_name,
        ]
    result = await gateway.clear_note_properties(req.path, names)
    invalidate_items()
    return result
