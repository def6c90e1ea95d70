# storefront/services/catalog_service.py
"""Products, images and variants, plus the Excel bulk export/import."""
from io import BytesIO
from zipfile import BadZipFile

import pandas as pd
from flask import current_app
from sqlalchemy import asc, desc, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..model import Category, Product, ProductImage, Tag, Variant
from ..utils.errors import BadRequest, InternalError, NotFound, conflict_from_integrity
from ..utils.money import parse_money
from ..utils.parse import parse_bool, parse_int, parse_opt_int, slugify

SORTS = {
    "price_asc": (Product.selling_price, asc),
    "price_desc": (Product.selling_price, desc),
    "name": (Product.name, asc),
    "newest": (Product.created_at, desc),
    "oldest": (Product.created_at, asc),
}


def commit_or_raise(action: str):
    """Commit the unit of work; roll the whole aggregate back on failure."""
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise conflict_from_integrity(e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error("failed to %s: %s", action, e)
        raise InternalError(f"Failed to {action}: {e}")


# ---------- reads ----------

def _sort_products(query, sort, order):
    sort_key = SORTS.get((sort or "").strip())
    if sort_key is None:
        # unknown keys: created_at, newest first unless order=asc
        sort_key = (Product.created_at, asc if (order or "").lower() == "asc" else desc)
    col, direction = sort_key
    return query.order_by(direction(col), direction(Product.id))


def list_products(filters: dict) -> dict:
    cfg = current_app.config
    page = max(parse_int(filters.get("page"), 1), 1)
    limit = min(max(parse_int(filters.get("limit"), cfg["DEFAULT_PAGE_SIZE"]), 1), cfg["MAX_PAGE_SIZE"])

    query = Product.query.filter(Product.is_active.is_(True))

    if filters.get("featured") not in (None, ""):
        query = query.filter(Product.is_featured.is_(parse_bool(filters["featured"])))

    min_price = parse_money(filters.get("min_price"))
    max_price = parse_money(filters.get("max_price"))
    if min_price is not None:
        query = query.filter(Product.selling_price >= min_price)
    if max_price is not None:
        query = query.filter(Product.selling_price <= max_price)

    search = (filters.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        query = query.filter(or_(Product.name.ilike(like), Product.description.ilike(like)))

    category = (filters.get("category") or "").strip()
    if category:
        query = query.filter(Product.categories.any(Category.slug == category))

    tag = (filters.get("tag") or "").strip()
    if tag:
        query = query.filter(Product.tags.any(or_(Tag.slug == tag, Tag.name == tag)))

    query = _sort_products(query, filters.get("sort"), filters.get("order"))
    pagination = query.paginate(page=page, per_page=limit, error_out=False)

    return {
        "products": [p.as_list_item() for p in pagination.items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": pagination.total,
            "total_pages": pagination.pages,
        },
    }


def get_product(product_id) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFound("Product not found")
    return product


def get_product_by_slug(slug: str) -> Product:
    product = Product.query.filter_by(slug=slug, is_active=True).first()
    if not product:
        raise NotFound("Product not found")
    return product


def get_product_variants(product_id):
    get_product(product_id)
    return (Variant.query
            .filter_by(product_id=product_id, is_active=True)
            .order_by(Variant.id.asc())
            .all())


# ---------- builders ----------

def _build_images(raw_images):
    images = []
    for index, img in enumerate(raw_images or []):
        if isinstance(img, str):
            img = {"image_url": img}
        url = (img.get("image_url") or "").strip()
        if not url:
            raise BadRequest("image_url is required for every image")
        images.append(ProductImage(
            image_url=url,
            is_primary=parse_bool(img.get("is_primary")),
            display_order=parse_int(img.get("display_order"), index),
        ))
    # exactly one primary: the first flagged one, else the first image
    flagged = [i for i in images if i.is_primary]
    for i in images:
        i.is_primary = False
    if images:
        (flagged[0] if flagged else images[0]).is_primary = True
    return images


def _variant_fields(data: dict, partial=False) -> dict:
    fields = {}
    if not partial or "sku_code" in data:
        sku = (data.get("sku_code") or "").strip()
        if not sku:
            raise BadRequest("sku_code is required for every variant")
        fields["sku_code"] = sku
    for key in ("color", "size", "image_url"):
        if key in data:
            fields[key] = data.get(key)
    if not partial or "stock_quantity" in data:
        stock = parse_opt_int(data.get("stock_quantity", 0))
        if stock is None or stock < 0:
            raise BadRequest("stock_quantity must be a non-negative integer")
        fields["stock_quantity"] = stock
    if "price_override" in data:
        raw = data.get("price_override")
        if raw in (None, ""):
            fields["price_override"] = None
        else:
            price = parse_money(raw)
            if price is None or price < 0:
                raise BadRequest("price_override must be a non-negative number")
            fields["price_override"] = price
    if "is_active" in data:
        fields["is_active"] = parse_bool(data.get("is_active"), True)
    return fields


def _load_by_ids(model, ids, label):
    if not isinstance(ids, (list, tuple)):
        raise BadRequest(f"{label} must be a list of ids")
    wanted = {parse_opt_int(i) for i in ids}
    if None in wanted:
        raise BadRequest(f"{label} must be a list of ids")
    if not wanted:
        return []
    rows = model.query.filter(model.id.in_(wanted)).all()
    missing = wanted - {r.id for r in rows}
    if missing:
        raise BadRequest(f"Unknown {label}: {', '.join(str(m) for m in sorted(missing))}")
    return rows


def _prices(payload):
    out = {}
    for key in ("mrp", "selling_price"):
        if key in payload:
            value = parse_money(payload.get(key))
            if value is None or value < 0:
                raise BadRequest(f"{key} must be a non-negative number")
            out[key] = value
    return out


# ---------- writes ----------

def create_product(payload: dict) -> Product:
    name = (payload.get("name") or "").strip()
    if not name or payload.get("mrp") in (None, "") or payload.get("selling_price") in (None, ""):
        raise BadRequest("Missing required fields: name, mrp, selling_price")
    slug = slugify(name)
    if not slug:
        raise BadRequest("name must contain letters or digits")

    product = Product(
        name=name,
        slug=slug,
        description=payload.get("description"),
        brand=payload.get("brand"),
        is_featured=parse_bool(payload.get("is_featured")),
        is_active=True,
        **_prices(payload),
    )
    product.images = _build_images(payload.get("images"))
    product.variants = [Variant(**_variant_fields(v)) for v in (payload.get("variants") or [])]
    product.categories = _load_by_ids(Category, payload.get("categories") or [], "categories")
    product.tags = _load_by_ids(Tag, payload.get("tags") or [], "tags")

    db.session.add(product)
    commit_or_raise("create product")
    current_app.logger.info("product created id=%s slug=%s", product.id, product.slug)
    return product


def update_product(product_id, payload: dict) -> Product:
    product = get_product(product_id)

    if "name" in payload:
        name = (payload.get("name") or "").strip()
        if not name or not slugify(name):
            raise BadRequest("name cannot be empty")
        product.name = name
        product.slug = slugify(name)

    for key in ("description", "brand"):
        if key in payload:
            setattr(product, key, payload.get(key))
    for key in ("is_featured", "is_active"):
        if key in payload:
            setattr(product, key, parse_bool(payload.get(key)))
    for key, value in _prices(payload).items():
        setattr(product, key, value)

    # associations are replaced wholesale when supplied
    if "categories" in payload:
        product.categories = _load_by_ids(Category, payload.get("categories") or [], "categories")
    if "tags" in payload:
        product.tags = _load_by_ids(Tag, payload.get("tags") or [], "tags")
    if "images" in payload:
        product.images = _build_images(payload.get("images"))

    commit_or_raise("update product")
    return product


def delete_product(product_id):
    # soft delete keeps order history resolvable
    product = get_product(product_id)
    product.is_active = False
    commit_or_raise("delete product")
    return product


def add_variant(product_id, payload: dict) -> Variant:
    product = get_product(product_id)
    variant = Variant(product_id=product.id, **_variant_fields(payload))
    db.session.add(variant)
    commit_or_raise("add variant")
    return variant


def get_variant(variant_id) -> Variant:
    variant = db.session.get(Variant, variant_id)
    if not variant:
        raise NotFound("Variant not found")
    return variant


def update_variant(variant_id, payload: dict) -> Variant:
    variant = get_variant(variant_id)
    fields = _variant_fields(payload, partial=True)
    if not fields:
        raise BadRequest("No fields to update")
    for key, value in fields.items():
        setattr(variant, key, value)
    commit_or_raise("update variant")
    return variant


def delete_variant(variant_id) -> Variant:
    variant = get_variant(variant_id)
    variant.is_active = False
    commit_or_raise("delete variant")
    return variant


def set_stock(variant_id, stock, product_id=None) -> Variant:
    variant = get_variant(variant_id)
    if product_id is not None and str(variant.product_id) != str(product_id):
        raise BadRequest("Variant does not belong to the specified Product ID")
    stock = parse_opt_int(stock)
    if stock is None or stock < 0:
        raise BadRequest("stock must be a non-negative integer")
    variant.stock_quantity = stock
    commit_or_raise("update inventory")
    return variant


# ---------- Excel export / import ----------

EXPORT_COLUMNS = [
    "Name", "Slug", "Description", "Brand", "MRP", "Selling Price", "Featured", "Active",
    "Categories", "Tags", "SKU", "Color", "Size", "Stock", "Price Override", "Variant Active",
]
REQUIRED_IMPORT_COLUMNS = ["Name", "MRP", "Selling Price"]


def export_catalog() -> BytesIO:
    """All products, one row per variant (products without variants get one row)."""
    rows = []
    for p in Product.query.order_by(Product.id.asc()).all():
        base = {
            "Name": p.name,
            "Slug": p.slug,
            "Description": p.description,
            "Brand": p.brand,
            "MRP": float(p.mrp),
            "Selling Price": float(p.selling_price),
            "Featured": p.is_featured,
            "Active": p.is_active,
            "Categories": ",".join(c.slug for c in p.categories),
            "Tags": ",".join(t.slug for t in p.tags),
        }
        if not p.variants:
            rows.append(base)
        for v in p.variants:
            rows.append({
                **base,
                "SKU": v.sku_code,
                "Color": v.color,
                "Size": v.size,
                "Stock": v.stock_quantity,
                "Price Override": float(v.price_override) if v.price_override is not None else None,
                "Variant Active": v.is_active,
            })
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)

    output = BytesIO()
    df.to_excel(output, index=False)
    output.seek(0)
    return output


def _cell(row, column):
    if column not in row.index:
        return None
    value = row[column]
    if pd.isna(value):
        return None
    return value.strip() if isinstance(value, str) else value


def _slug_list(value):
    return [s.strip() for s in str(value or "").split(",") if s.strip()]


def import_catalog(file_storage) -> dict:
    """Upsert products (by slug) and variants (by SKU) from an uploaded .xlsx file."""
    try:
        df = pd.read_excel(file_storage)
    except (ValueError, OSError, BadZipFile) as e:
        raise BadRequest(f"Could not read spreadsheet: {e}")
    df.columns = df.columns.str.strip()
    missing = [c for c in REQUIRED_IMPORT_COLUMNS if c not in df.columns]
    if missing:
        raise BadRequest(f"Missing required columns: {', '.join(missing)}")

    summary = {"products_created": 0, "products_updated": 0, "variants_created": 0, "variants_updated": 0}
    seen = {}

    for index, row in df.iterrows():
        line = index + 2  # header is row 1
        name = _cell(row, "Name")
        mrp = parse_money(_cell(row, "MRP"))
        selling = parse_money(_cell(row, "Selling Price"))
        if not name or mrp is None or selling is None:
            raise BadRequest(f"Row {line}: Name, MRP and Selling Price are required")
        slug = slugify(str(name))

        product = seen.get(slug) or Product.query.filter_by(slug=slug).first()
        if product is None:
            product = Product(name=str(name), slug=slug)
            db.session.add(product)
            summary["products_created"] += 1
        elif slug not in seen:
            summary["products_updated"] += 1
        if slug not in seen:
            product.mrp = mrp
            product.selling_price = selling
            product.description = _cell(row, "Description")
            product.brand = _cell(row, "Brand")
            product.is_featured = parse_bool(_cell(row, "Featured"))
            product.is_active = parse_bool(_cell(row, "Active"), True)
            if "Categories" in df.columns:
                product.categories = Category.query.filter(
                    Category.slug.in_(_slug_list(_cell(row, "Categories")))).all()
            if "Tags" in df.columns:
                product.tags = Tag.query.filter(Tag.slug.in_(_slug_list(_cell(row, "Tags")))).all()
            seen[slug] = product

        sku = _cell(row, "SKU")
        if not sku:
            continue
        stock = parse_opt_int(_cell(row, "Stock"))
        fields = _variant_fields({
            "sku_code": str(sku),
            "color": _cell(row, "Color"),
            "size": None if _cell(row, "Size") is None else str(_cell(row, "Size")),
            "stock_quantity": 0 if stock is None else stock,
            "price_override": _cell(row, "Price Override"),
            "is_active": _cell(row, "Variant Active") if _cell(row, "Variant Active") is not None else True,
        })
        variant = Variant.query.filter_by(sku_code=fields["sku_code"]).first()
        if variant is None:
            product.variants.append(Variant(**fields))
            summary["variants_created"] += 1
        else:
            for key, value in fields.items():
                setattr(variant, key, value)
            variant.product = product
            summary["variants_updated"] += 1

    commit_or_raise("import products")
    current_app.logger.info("catalog import finished: %s", summary)
    return summary
