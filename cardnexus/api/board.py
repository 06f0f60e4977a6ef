"""
Board (forum) endpoints.

Posts in fixed categories with tags, an optional linked card, and threaded
comments.
"""

from collections import defaultdict
from datetime import datetime
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from cardnexus.api.deps import CurrentUser, SessionDep
from cardnexus.api.schemas import CardSummary, Paginated, UserSummary
from cardnexus.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from cardnexus.db.community import (
    PostDraft,
    create_comment,
    create_post,
    get_comment,
    get_post,
    increment_post_views,
    search_posts,
)
from cardnexus.db.operations import get_card
from cardnexus.models.db import CommentDB, PostDB
from cardnexus.models.enums import PostCategory
from cardnexus.models.failure import (
    ApiResponse,
    FailureKind,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from cardnexus.services.text import excerpt

router = APIRouter(prefix="/board", tags=["board"])

TITLE_MAX_LENGTH = 100
CONTENT_MAX_LENGTH = 10000
COMMENT_MAX_LENGTH = 2000
EXCERPT_LENGTH = 200

PostSort = Literal["created_at", "like_count", "view_count"]


class PostBase(BaseModel):
    id: int
    title: str
    category: PostCategory
    tags: list[str]
    view_count: int
    like_count: int
    is_pinned: bool
    is_locked: bool
    created_at: datetime
    updated_at: datetime
    author: UserSummary
    card: CardSummary | None = None


class PostSummary(PostBase):
    excerpt: str
    comment_count: int


class PostList(Paginated):
    posts: list[PostSummary]


class CommentView(BaseModel):
    id: int
    content: str
    parent_id: int | None = None
    created_at: datetime
    author: UserSummary
    replies: list["CommentView"] = Field(default_factory=list)


class PostDetail(PostBase):
    content: str
    comment_count: int
    comments: list[CommentView]


class CreatePostRequest(BaseModel):
    title: str = ""
    content: str = ""
    category: str = PostCategory.GENERAL.value
    tags: list[str] = Field(default_factory=list)
    card_id: int | None = None


class CreateCommentRequest(BaseModel):
    content: str = ""
    parent_id: int | None = None


def _post_fields(post: PostDB) -> dict[str, Any]:
    return {
        "id": post.id,
        "title": post.title,
        "category": PostCategory(post.category),
        "tags": [tag.tag_name for tag in post.tags],
        "view_count": post.view_count,
        "like_count": post.like_count,
        "is_pinned": post.is_pinned,
        "is_locked": post.is_locked,
        "created_at": post.created_at,
        "updated_at": post.updated_at,
        "author": UserSummary.model_validate(post.author),
        "card": CardSummary.model_validate(post.card) if post.card else None,
    }


def _comment_view(comment: CommentDB) -> CommentView:
    return CommentView(
        id=comment.id,
        content=comment.content,
        parent_id=comment.parent_id,
        created_at=comment.created_at,
        author=UserSummary.model_validate(comment.author),
    )


def thread_comments(comments: list[CommentDB]) -> list[CommentView]:
    """
    Nest comments under their parents.

    Top-level comments come newest first; replies oldest first.
    """
    views = {comment.id: _comment_view(comment) for comment in comments}
    children: dict[int, list[CommentView]] = defaultdict(list)
    roots: list[CommentView] = []

    for comment in sorted(comments, key=lambda c: (c.created_at, c.id)):
        view = views[comment.id]
        if comment.parent_id is not None and comment.parent_id in views:
            children[comment.parent_id].append(view)
        else:
            roots.append(view)

    for comment_id, replies in children.items():
        views[comment_id].replies = replies
    return list(reversed(roots))


def validate_post(request: CreatePostRequest) -> PostDraft:
    title = request.title.strip()
    content = request.content.strip()
    if not title:
        raise ValidationFailedError("Title is required")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationFailedError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    if not content:
        raise ValidationFailedError("Content is required")
    if len(content) > CONTENT_MAX_LENGTH:
        raise ValidationFailedError(f"Content must be at most {CONTENT_MAX_LENGTH} characters")
    try:
        category = PostCategory(request.category)
    except ValueError as e:
        raise ValidationFailedError(
            "Invalid category", detail=[c.value for c in PostCategory]
        ) from e

    tags = [tag.strip() for tag in request.tags if tag.strip()]
    return PostDraft(
        title=title, content=content, category=category, tags=tags, card_id=request.card_id
    )


@router.get("", response_model=ApiResponse[PostList])
async def list_posts(
    session: SessionDep,
    search: str | None = None,
    category: PostCategory | None = None,
    tag: str | None = None,
    sort_by: PostSort = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
) -> ApiResponse[PostList]:
    """Posts with comment counts; pinned posts first."""
    result = await search_posts(
        session,
        search=search,
        category=category,
        tag=tag,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    posts = [
        PostSummary(
            **_post_fields(post),
            excerpt=excerpt(post.content, EXCERPT_LENGTH),
            comment_count=count,
        )
        for post, count in result.items
    ]
    return ApiResponse.ok(PostList(posts=posts, pagination=result.meta()))


@router.post(
    "",
    response_model=ApiResponse[PostDetail],
    status_code=status.HTTP_201_CREATED,
)
async def post_board(
    request: CreatePostRequest,
    user: CurrentUser,
    session: SessionDep,
) -> ApiResponse[PostDetail]:
    """Create a post."""
    draft = validate_post(request)
    if draft.card_id is not None and await get_card(session, draft.card_id) is None:
        raise NotFoundError("Card", draft.card_id)

    post = await create_post(session, user.id, draft)
    return ApiResponse.ok(
        PostDetail(**_post_fields(post), content=post.content, comment_count=0, comments=[])
    )


@router.get("/{post_id}", response_model=ApiResponse[PostDetail])
async def get_post_detail(post_id: int, session: SessionDep) -> ApiResponse[PostDetail]:
    """A post with its comment thread; counts one view."""
    post = await get_post(session, post_id)
    if post is None:
        raise NotFoundError("Post", post_id)

    await increment_post_views(session, post_id)
    await session.refresh(post, ["view_count"])

    return ApiResponse.ok(
        PostDetail(
            **_post_fields(post),
            content=post.content,
            comment_count=len(post.comments),
            comments=thread_comments(list(post.comments)),
        )
    )


@router.post(
    "/{post_id}/comments",
    response_model=ApiResponse[CommentView],
    status_code=status.HTTP_201_CREATED,
)
async def post_comment(
    post_id: int,
    request: CreateCommentRequest,
    user: CurrentUser,
    session: SessionDep,
) -> ApiResponse[CommentView]:
    """Comment on a post, optionally as a reply to another comment."""
    content = request.content.strip()
    if not content:
        raise ValidationFailedError("Comment content is required")
    if len(content) > COMMENT_MAX_LENGTH:
        raise ValidationFailedError(f"Comment must be at most {COMMENT_MAX_LENGTH} characters")

    post = await get_post(session, post_id)
    if post is None:
        raise NotFoundError("Post", post_id)
    if post.is_locked:
        raise ForbiddenError("This post is locked", kind=FailureKind.POST_LOCKED)

    if request.parent_id is not None:
        parent = await get_comment(session, request.parent_id)
        if parent is None:
            raise NotFoundError("Parent comment", request.parent_id)
        if parent.post_id != post_id:
            raise ValidationFailedError("Parent comment belongs to a different post")

    comment = await create_comment(session, post_id, user.id, content, request.parent_id)
    return ApiResponse.ok(_comment_view(comment))
