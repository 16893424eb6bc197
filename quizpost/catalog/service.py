from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

import structlog

from quizpost.catalog.errors import InvalidTemplateError, QuizNotFoundError, TemplateNotFoundError
from quizpost.catalog.types import QuizPage, QuizSnapshot, TemplateSnapshot
from quizpost.core.languages import SUPPORTED_LANGUAGES
from quizpost.core.statuses import QuizStatus, QuizType
from quizpost.db.models.quizzes import Quiz
from quizpost.db.models.templates import Template
from quizpost.db.repo.quizzes_repo import QuizzesRepo
from quizpost.db.repo.templates_repo import TemplatesRepo
from quizpost.db.session import SessionLocal
from quizpost.generation.strategies.factory import StrategyFactory
from quizpost.generation.templating import build_document, merge_variables
from quizpost.generation.types import GenerationContext

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 100


async def create_template(
    *,
    name: str,
    html: str,
    quiz_type: str,
    css: str | None = None,
    variables: dict[str, object] | None = None,
    image_url: str | None = None,
    description: str | None = None,
) -> TemplateSnapshot:
    try:
        resolved_type = QuizType(quiz_type)
    except ValueError as exc:
        raise InvalidTemplateError(f"unsupported quiz type: {quiz_type}") from exc
    if not name.strip() or not html.strip():
        raise InvalidTemplateError("template name and html are required")

    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        template = await TemplatesRepo.create(
            session,
            template=Template(
                id=uuid4(),
                name=name.strip(),
                html=html,
                css=css,
                variables=variables or {},
                quiz_type=resolved_type.value,
                image_url=image_url,
                description=description,
                created_at=now_utc,
                updated_at=now_utc,
            ),
        )
        snapshot = TemplateSnapshot.from_model(template)
    logger.info("template_created", template_id=str(snapshot.template_id), quiz_type=snapshot.quiz_type)
    return snapshot


async def list_templates(*, quiz_type: str | None = None) -> list[TemplateSnapshot]:
    async with SessionLocal.begin() as session:
        templates = await TemplatesRepo.list_all(session, quiz_type=quiz_type)
        return [TemplateSnapshot.from_model(template) for template in templates]


async def get_template(template_id: UUID) -> TemplateSnapshot:
    async with SessionLocal.begin() as session:
        template = await TemplatesRepo.get_by_id(session, template_id)
        if template is None:
            raise TemplateNotFoundError
        return TemplateSnapshot.from_model(template)


async def preview_template(template_id: UUID, *, overrides: dict[str, object] | None = None) -> str:
    template = await get_template(template_id)
    variables = merge_variables(template.variables, overrides)
    return build_document(template.html, template.css, variables, title=template.name)


async def create_quiz(
    *,
    template_id: UUID,
    title: str | None = None,
    answer: str | None = None,
    solution: str | None = None,
    variables: dict[str, object] | None = None,
    language: str = "en",
    theme: str | None = None,
    difficulty: str = "medium",
    content: str | None = None,
    factory: StrategyFactory | None = None,
) -> QuizSnapshot:
    if language not in SUPPORTED_LANGUAGES:
        raise InvalidTemplateError(f"unsupported language: {language}")
    template = await get_template(template_id)

    if answer is None:
        strategy = (factory or StrategyFactory()).get(template.quiz_type)
        generated = await strategy.generate(
            GenerationContext(
                quiz_type=QuizType(template.quiz_type),
                language=language,
                difficulty=difficulty,
                theme=theme,
                content=content,
            )
        )
        title = title or generated.title
        answer = generated.answer
        solution = solution or generated.solution
        variables = merge_variables(generated.template_variables(), variables)

    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        quiz = await QuizzesRepo.create(
            session,
            quiz=Quiz(
                id=uuid4(),
                title=(title or template.name).strip(),
                answer=answer,
                solution=solution,
                variables=dict(variables or {}),
                template_id=template.template_id,
                batch_id=None,
                status=QuizStatus.DRAFT,
                language=language,
                created_at=now_utc,
                updated_at=now_utc,
            ),
        )
        row = await QuizzesRepo.get_with_template(session, quiz.id)
        if row is None:
            raise QuizNotFoundError
        snapshot = QuizSnapshot.from_models(*row)
    logger.info("quiz_created", quiz_id=str(snapshot.quiz_id), quiz_type=snapshot.quiz_type)
    return snapshot


async def get_quiz(quiz_id: UUID) -> QuizSnapshot:
    async with SessionLocal.begin() as session:
        row = await QuizzesRepo.get_with_template(session, quiz_id)
        if row is None:
            raise QuizNotFoundError
        return QuizSnapshot.from_models(*row)


async def list_quizzes(
    *,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    quiz_type: str | None = None,
) -> QuizPage:
    resolved_page = max(1, int(page))
    resolved_limit = max(1, min(MAX_PAGE_SIZE, int(limit)))
    async with SessionLocal.begin() as session:
        rows, total = await QuizzesRepo.list_page(
            session,
            page=resolved_page,
            limit=resolved_limit,
            search=search,
            quiz_type=quiz_type,
        )
        items = [QuizSnapshot.from_models(quiz, template) for quiz, template in rows]
    return QuizPage(items=items, total=total, page=resolved_page, limit=resolved_limit)
