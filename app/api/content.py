import logging
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.models import (
    Content, ContentVersion, ContentCategory, ContentTag, ContentView, content_tag_links, User
)
from app.schemas import (
    ContentCreate, ContentUpdate, ContentSummary, ContentDetail, ContentVersion as ContentVersionSchema,
    ContentCategoryCreate, ContentCategoryUpdate, ContentCategory as ContentCategorySchema, ContentCategoryNode,
    ContentTagCreate, ContentTagUpdate, ContentTag as ContentTagSchema, ContentAnalyticsOverview,
    Page, MessageResponse
)
from app.services.dependency import get_tenant_db, require_permission
from app.services.listing import active, get_or_404, soft_delete, apply_updates, contains_any, paginate
from app.utils.slug import slugify

logger = logging.getLogger(__name__)

router = APIRouter()

SORT_COLUMNS = {
    "created_at": Content.created_at,
    "updated_at": Content.updated_at,
    "published_at": Content.published_at,
    "title": Content.title,
    "view_count": Content.view_count,
}
VERSIONED_FIELDS = ("title", "content", "excerpt")


def make_slug(text: str) -> str:
    slug = slugify(text)
    if not slug:
        raise HTTPException(status_code=400, detail="Could not generate a slug from the given text")
    return slug


def ensure_unique_content_slug(db: Session, slug: str, exclude_id: Optional[int] = None):
    query = active(db.query(Content), Content).filter(Content.slug == slug)
    if exclude_id is not None:
        query = query.filter(Content.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=400, detail=f"Content with slug '{slug}' already exists")


def resolve_categories(db: Session, category_ids: List[int]) -> List[ContentCategory]:
    if not category_ids:
        return []
    categories = db.query(ContentCategory).filter(ContentCategory.id.in_(category_ids)).all()
    missing = set(category_ids) - {c.id for c in categories}
    if missing:
        raise HTTPException(status_code=404, detail=f"Content category not found: {sorted(missing)[0]}")
    return categories


def resolve_tags(db: Session, names: List[str]) -> List[ContentTag]:
    """Get-or-create tags by slug, preserving the given order"""
    tags = []
    seen = set()
    for name in names:
        name = name.strip()
        if not name:
            continue
        slug = make_slug(name)
        if slug in seen:
            continue
        seen.add(slug)
        tag = db.query(ContentTag).filter(ContentTag.slug == slug).first()
        if not tag:
            tag = ContentTag(name=name, slug=slug)
            db.add(tag)
        tags.append(tag)
    return tags


def resolve_related(db: Session, related_ids: List[int], content_id: Optional[int] = None) -> List[Content]:
    if not related_ids:
        return []
    if content_id is not None and content_id in related_ids:
        raise HTTPException(status_code=400, detail="Content cannot be related to itself")
    related = active(db.query(Content), Content).filter(Content.id.in_(related_ids)).all()
    missing = set(related_ids) - {c.id for c in related}
    if missing:
        raise HTTPException(status_code=404, detail=f"Related content not found: {sorted(missing)[0]}")
    return related


def get_content_or_404(db: Session, content_id: int) -> Content:
    return get_or_404(
        db, Content, content_id, "Content not found",
        [selectinload(Content.categories), selectinload(Content.tags), selectinload(Content.related)]
    )


# ============================================================================
# Categories
# ============================================================================

def ensure_unique_category_slug(db: Session, slug: str, exclude_id: Optional[int] = None):
    query = db.query(ContentCategory).filter(ContentCategory.slug == slug)
    if exclude_id is not None:
        query = query.filter(ContentCategory.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=400, detail=f"Category with slug '{slug}' already exists")


def ensure_valid_parent(db: Session, parent_id: Optional[int], category_id: Optional[int] = None):
    """Parent must exist and must not be the category itself or one of its descendants"""
    if parent_id is None:
        return
    if category_id is not None and parent_id == category_id:
        raise HTTPException(status_code=400, detail="A category cannot be its own parent")

    parent = get_or_404(db, ContentCategory, parent_id, "Parent category not found")
    visited = set()
    while parent is not None and parent.id not in visited:
        if category_id is not None and parent.id == category_id:
            raise HTTPException(status_code=400, detail="Category hierarchy cannot contain cycles")
        visited.add(parent.id)
        parent = db.query(ContentCategory).filter(ContentCategory.id == parent.parent_id).first() \
            if parent.parent_id is not None else None


@router.get("/categories/list", response_model=List[ContentCategorySchema])
async def list_content_categories(
    active_only: bool = Query(False, alias="activeOnly"),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.view"))
):
    query = db.query(ContentCategory)
    if active_only:
        query = query.filter(ContentCategory.is_active == True)
    return query.order_by(ContentCategory.sort_order, ContentCategory.name).all()


@router.get("/categories/tree", response_model=List[ContentCategoryNode])
async def get_content_category_tree(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.view"))
):
    categories = db.query(ContentCategory).order_by(ContentCategory.sort_order, ContentCategory.name).all()

    nodes = {
        c.id: {
            "id": c.id,
            "name": c.name,
            "slug": c.slug,
            "description": c.description,
            "parent_id": c.parent_id,
            "sort_order": c.sort_order,
            "is_active": c.is_active,
            "children": [],
        }
        for c in categories
    }
    roots = []
    for category in categories:
        node = nodes[category.id]
        if category.parent_id in nodes:
            nodes[category.parent_id]["children"].append(node)
        else:
            roots.append(node)
    return roots


@router.get("/categories/{category_id}", response_model=ContentCategorySchema)
async def get_content_category(
    category_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.view"))
):
    return get_or_404(db, ContentCategory, category_id, "Content category not found")


@router.post("/categories", response_model=ContentCategorySchema, status_code=status.HTTP_201_CREATED)
async def create_content_category(
    data: ContentCategoryCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.manage"))
):
    slug = make_slug(data.slug or data.name)
    ensure_unique_category_slug(db, slug)
    ensure_valid_parent(db, data.parent_id)

    category = ContentCategory(**data.model_dump(exclude={"slug"}), slug=slug)
    db.add(category)
    db.commit()
    db.refresh(category)

    logger.info(f"Content category created: {category.slug} by user {current_user.id}")
    return category


@router.put("/categories/{category_id}", response_model=ContentCategorySchema)
async def update_content_category(
    category_id: int,
    data: ContentCategoryUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.manage"))
):
    category = get_or_404(db, ContentCategory, category_id, "Content category not found")

    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    if update_data.get("slug"):
        update_data["slug"] = make_slug(update_data["slug"])
        if update_data["slug"] != category.slug:
            ensure_unique_category_slug(db, update_data["slug"], exclude_id=category.id)
    else:
        update_data.pop("slug", None)
    if "parent_id" in update_data:
        ensure_valid_parent(db, update_data["parent_id"], category_id=category.id)

    apply_updates(category, update_data)
    db.commit()
    db.refresh(category)

    logger.info(f"Content category updated: {category.slug} by user {current_user.id}")
    return category


@router.delete("/categories/{category_id}", response_model=MessageResponse)
async def delete_content_category(
    category_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.manage"))
):
    category = get_or_404(db, ContentCategory, category_id, "Content category not found")
    if db.query(ContentCategory).filter(ContentCategory.parent_id == category.id).first():
        raise HTTPException(status_code=400, detail="Cannot delete category with subcategories")

    db.delete(category)
    db.commit()

    logger.info(f"Content category deleted: {category_id} by user {current_user.id}")
    return {"message": "Category deleted successfully"}


# ============================================================================
# Tags
# ============================================================================

@router.get("/tags/list", response_model=List[ContentTagSchema])
async def list_content_tags(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.view"))
):
    return db.query(ContentTag).order_by(ContentTag.name).all()


@router.get("/tags/popular", response_model=List[ContentTagSchema])
async def list_popular_tags(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.view"))
):
    usage = func.count(content_tag_links.c.content_id)
    rows = db.query(ContentTag, usage).outerjoin(
        content_tag_links, content_tag_links.c.tag_id == ContentTag.id
    ).group_by(ContentTag.id).order_by(usage.desc(), ContentTag.name).limit(limit).all()

    tags = []
    for tag, count in rows:
        tag.usage_count = count
        tags.append(tag)
    return tags


@router.get("/tags/{tag_id}", response_model=ContentTagSchema)
async def get_content_tag(
    tag_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.view"))
):
    return get_or_404(db, ContentTag, tag_id, "Tag not found")


@router.post("/tags", response_model=ContentTagSchema, status_code=status.HTTP_201_CREATED)
async def create_content_tag(
    data: ContentTagCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.manage"))
):
    slug = make_slug(data.slug or data.name)
    if db.query(ContentTag).filter(ContentTag.slug == slug).first():
        raise HTTPException(status_code=400, detail=f"Tag with slug '{slug}' already exists")

    tag = ContentTag(name=data.name, slug=slug)
    db.add(tag)
    db.commit()
    db.refresh(tag)
    return tag


@router.put("/tags/{tag_id}", response_model=ContentTagSchema)
async def update_content_tag(
    tag_id: int,
    data: ContentTagUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.manage"))
):
    tag = get_or_404(db, ContentTag, tag_id, "Tag not found")

    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    if update_data.get("slug"):
        update_data["slug"] = make_slug(update_data["slug"])
        if db.query(ContentTag).filter(ContentTag.slug == update_data["slug"], ContentTag.id != tag.id).first():
            raise HTTPException(status_code=400, detail=f"Tag with slug '{update_data['slug']}' already exists")
    else:
        update_data.pop("slug", None)

    apply_updates(tag, update_data)
    db.commit()
    db.refresh(tag)
    return tag


@router.delete("/tags/{tag_id}", response_model=MessageResponse)
async def delete_content_tag(
    tag_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.manage"))
):
    tag = get_or_404(db, ContentTag, tag_id, "Tag not found")
    # Junction rows go with the tag
    db.delete(tag)
    db.commit()

    logger.info(f"Tag deleted: {tag_id} by user {current_user.id}")
    return {"message": "Tag deleted successfully"}


# ============================================================================
# Analytics
# ============================================================================

@router.get("/analytics/overview", response_model=ContentAnalyticsOverview)
async def get_content_analytics_overview(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.view"))
):
    items = active(db.query(Content), Content).all()
    return {
        "totalContent": len(items),
        "published": sum(1 for c in items if c.status == "published"),
        "drafts": sum(1 for c in items if c.status == "draft"),
        "totalViews": sum(c.view_count or 0 for c in items),
        "byType": dict(Counter(c.type for c in items)),
        "byStatus": dict(Counter(c.status for c in items)),
    }


# ============================================================================
# Content
# ============================================================================

@router.get("/", response_model=Page[ContentSummary])
async def list_content(
    content_type: Optional[str] = Query(None, alias="type"),
    status_filter: Optional[str] = Query(None, alias="status"),
    visibility: Optional[str] = None,
    category_id: Optional[int] = Query(None, alias="categoryId"),
    author_id: Optional[int] = Query(None, alias="authorId"),
    search: Optional[str] = None,
    tags: Optional[str] = Query(None, description="Comma-separated tag names or slugs"),
    language: Optional[str] = None,
    featured_only: bool = Query(False, alias="featuredOnly"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, alias="pageSize", ge=1, le=200),
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.view"))
):
    query = active(db.query(Content), Content)

    if content_type:
        query = query.filter(Content.type == content_type)
    if status_filter:
        query = query.filter(Content.status == status_filter)
    if visibility:
        query = query.filter(Content.visibility == visibility)
    if category_id:
        query = query.filter(Content.categories.any(ContentCategory.id == category_id))
    if author_id:
        query = query.filter(Content.author_id == author_id)
    if search:
        query = query.filter(contains_any([Content.title, Content.excerpt, Content.content], search))
    if tags:
        slugs = [slugify(t) for t in tags.split(",") if t.strip()]
        if slugs:
            query = query.filter(Content.tags.any(ContentTag.slug.in_(slugs)))
    if language:
        query = query.filter(Content.language == language)
    if featured_only:
        query = query.filter(Content.is_featured == True)
    if start_date:
        query = query.filter(Content.created_at >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        query = query.filter(Content.created_at < datetime.combine(end_date + timedelta(days=1), datetime.min.time()))

    sort_column = SORT_COLUMNS.get(sort_by, Content.created_at)
    query = query.order_by(sort_column.asc() if sort_order.lower() == "asc" else sort_column.desc(), Content.id.desc())
    return paginate(query, page, page_size)


@router.get("/by-slug/{slug}", response_model=ContentDetail)
async def get_content_by_slug(
    slug: str,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.view"))
):
    content = active(db.query(Content), Content).filter(Content.slug == slug).first()
    if not content:
        raise HTTPException(status_code=404, detail="Content not found")
    return content


@router.get("/{content_id}", response_model=ContentDetail)
async def get_content(
    content_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.view"))
):
    return get_content_or_404(db, content_id)


@router.post("/", response_model=ContentDetail, status_code=status.HTTP_201_CREATED)
async def create_content(
    content_data: ContentCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.create"))
):
    """Create content together with its first version snapshot"""
    slug = make_slug(content_data.slug or content_data.title)
    ensure_unique_content_slug(db, slug)
    if content_data.parent_id is not None:
        get_or_404(db, Content, content_data.parent_id, "Parent content not found")

    data = content_data.model_dump(exclude={"slug", "category_ids", "tags", "related_content_ids"})
    content = Content(**data, slug=slug, author_id=current_user.id, version=1, view_count=0, created_by=current_user.id)
    if content.status == "published" and content.published_at is None:
        content.published_at = datetime.now()

    content.categories = resolve_categories(db, content_data.category_ids)
    content.tags = resolve_tags(db, content_data.tags)
    content.related = resolve_related(db, content_data.related_content_ids)
    content.versions.append(ContentVersion(
        version=1,
        title=content.title,
        content=content.content,
        excerpt=content.excerpt,
        change_summary="Initial version",
        created_by=current_user.id,
    ))

    db.add(content)
    db.commit()
    db.refresh(content)

    logger.info(f"Content created: {content.slug} by user {current_user.id}")
    return content


@router.put("/{content_id}", response_model=ContentDetail)
async def update_content(
    content_id: int,
    content_data: ContentUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.update"))
):
    content = get_content_or_404(db, content_id)

    update_data = content_data.model_dump(exclude_unset=True)
    change_summary = update_data.pop("change_summary", None)
    category_ids = update_data.pop("category_ids", None)
    tag_names = update_data.pop("tags", None)
    related_ids = update_data.pop("related_content_ids", None)
    if not update_data and category_ids is None and tag_names is None and related_ids is None:
        raise HTTPException(status_code=400, detail="No fields to update")

    if update_data.get("slug"):
        update_data["slug"] = make_slug(update_data["slug"])
        if update_data["slug"] != content.slug:
            ensure_unique_content_slug(db, update_data["slug"], exclude_id=content.id)
    else:
        update_data.pop("slug", None)
    if update_data.get("parent_id") is not None:
        if update_data["parent_id"] == content.id:
            raise HTTPException(status_code=400, detail="Content cannot be its own parent")
        get_or_404(db, Content, update_data["parent_id"], "Parent content not found")

    content_changed = any(
        field in update_data and update_data[field] != getattr(content, field)
        for field in VERSIONED_FIELDS
    )

    apply_updates(content, update_data)

    if category_ids is not None:
        content.categories = resolve_categories(db, category_ids)
    if tag_names is not None:
        content.tags = resolve_tags(db, tag_names)
    if related_ids is not None:
        content.related = resolve_related(db, related_ids, content_id=content.id)

    if content_changed:
        content.version = (content.version or 1) + 1
        content.versions.append(ContentVersion(
            version=content.version,
            title=content.title,
            content=content.content,
            excerpt=content.excerpt,
            change_summary=change_summary or "Content updated",
            created_by=current_user.id,
        ))

    db.commit()
    db.refresh(content)

    logger.info(f"Content updated: {content.slug} (v{content.version}) by user {current_user.id}")
    return content


@router.delete("/{content_id}", response_model=MessageResponse)
async def delete_content(
    content_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.delete"))
):
    content = get_or_404(db, Content, content_id, "Content not found")
    soft_delete(content)
    db.commit()

    logger.info(f"Content deleted: {content.slug} by user {current_user.id}")
    return {"message": "Content deleted successfully"}


@router.post("/{content_id}/publish", response_model=ContentDetail)
async def publish_content(
    content_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.publish"))
):
    content = get_content_or_404(db, content_id)
    content.status = "published"
    content.published_at = datetime.now()
    db.commit()
    db.refresh(content)

    logger.info(f"Content published: {content.slug} by user {current_user.id}")
    return content


@router.post("/{content_id}/unpublish", response_model=ContentDetail)
async def unpublish_content(
    content_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.publish"))
):
    content = get_content_or_404(db, content_id)
    content.status = "draft"
    db.commit()
    db.refresh(content)

    logger.info(f"Content unpublished: {content.slug} by user {current_user.id}")
    return content


@router.get("/{content_id}/versions", response_model=List[ContentVersionSchema])
async def list_content_versions(
    content_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.view"))
):
    get_or_404(db, Content, content_id, "Content not found")
    return db.query(ContentVersion).filter(
        ContentVersion.content_id == content_id
    ).order_by(ContentVersion.version.desc()).all()


@router.post("/{content_id}/view", response_model=MessageResponse)
async def track_content_view(
    content_id: int,
    request: Request,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("content.view"))
):
    """Record a view and bump the content's view counter"""
    content = get_or_404(db, Content, content_id, "Content not found")

    db.add(ContentView(
        content_id=content.id,
        user_id=current_user.id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        referer=request.headers.get("referer"),
    ))
    db.query(Content).filter(Content.id == content.id).update(
        {Content.view_count: func.coalesce(Content.view_count, 0) + 1},
        synchronize_session=False
    )
    db.commit()
    return {"message": "View recorded"}
