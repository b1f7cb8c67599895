"""
Product taxonomy and stock status.

Raw category values arrive as canonical ids, storefront labels, shop slugs
or placeholders such as "uncategorized". normalize_category maps them onto
PRODUCT_CATEGORIES, falling back to keywords in the product name and,
last, to the raw value itself.
"""

from dataclasses import dataclass
from functools import reduce
from typing import Dict, FrozenSet, Optional, Tuple

from .domain import Product
from .logging import get_logger

log = get_logger("categories")

ACTIVE = "active"
DRAFT = "draft"
OUT_OF_STOCK = "out_of_stock"
LOW_STOCK = "low_stock"

PRODUCT_STATUSES = (ACTIVE, DRAFT, OUT_OF_STOCK, LOW_STOCK)


@dataclass(frozen=True)
class Category:
    id: str
    label: str
    aliases: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class CategoryMatch:
    id: Optional[str]
    label: Optional[str]
    source: str  # "exact" | "keyword" | "fallback"

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"


PRODUCT_CATEGORIES: Tuple[Category, ...] = (
    Category("serum", "Serum", frozenset({"serums", "ampoule", "سيروم", "السيروم"})),
    Category("sunscreen", "Sunscreen", frozenset({"sun care", "suncare", "sunblock", "واقي الشمس", "واقي-الشمس"})),
    Category("moisturizer", "Moisturizer", frozenset({"moisturizers", "cream", "creams", "مرطب للبشرة", "مرطب-للبشرة"})),
    Category("cleanser", "Cleanser", frozenset({"cleansers", "face wash", "غسول", "منظفات"})),
    Category("toner", "Toner", frozenset({"toners", "تونر"})),
    Category("mask", "Face mask", frozenset({"masks", "face mask", "ماسك للوجه", "ماسك-للوجه"})),
    Category("eyecare", "Eye care", frozenset({"eye care", "العناية بالعين", "العناية-بالعين"})),
    Category("haircare", "Hair care", frozenset({"hair", "hair care", "العناية بالشعر", "العناية-بالشعر"})),
    Category("acne", "Acne", frozenset({"acne care", "حب الشباب", "حب-الشباب-والبثور"})),
    Category("antiaging", "Anti-aging", frozenset({"anti-aging", "anti aging", "مكافحة التجاعيد", "تجاعيد-البشره"})),
    Category("pads", "Pads", frozenset({"toner pads", "مسحات"})),
    Category("makeup", "Makeup", frozenset({"make-up", "المكياج"})),
    Category("lipcare", "Lip care", frozenset({"lips", "lip care", "العناية بالشفاه"})),
    Category("bodycare", "Body care", frozenset({"body", "body care", "العناية بالجسم"})),
)

# Values that carry no category information
GENERIC_CATEGORIES = frozenset({"", "uncategorized", "غير مصنف", "other", "general", "all"})

# Checked top to bottom against the lower-cased product name; first hit wins.
# Order matters: "eye cream" is a moisturizer, "hair mask" is a mask.
KEYWORD_RULES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("acne", ("acne", "blemish", "حب الشباب")),
    ("sunscreen", ("sunscreen", "spf", "sun cream", "sunblock", "شمس")),
    ("serum", ("serum", "ampoule", "essence", "سيروم")),
    ("cleanser", ("cleanser", "cleansing", "foam", "wash", "غسول")),
    ("toner", ("toner", "تونر")),
    ("mask", ("mask", "ماسك")),
    ("pads", ("pad", "مسحات")),
    ("moisturizer", ("cream", "moist", "lotion", "مرطب")),
    ("eyecare", ("eye", "عين")),
    ("lipcare", ("lip", "شفاه")),
    ("haircare", ("hair", "shampoo", "شعر")),
    ("makeup", ("makeup", "mascara", "foundation", "cushion", "مكياج")),
    ("antiaging", ("aging", "wrinkle", "retinol", "تجاعيد")),
    ("bodycare", ("body", "جسم")),
)

_BY_ID: Dict[str, Category] = {c.id: c for c in PRODUCT_CATEGORIES}


def _build_lookup() -> Dict[str, Category]:
    def add(acc: dict, category: Category) -> dict:
        keys = {category.id, category.label.lower(), *category.aliases}
        return {**acc, **{k.lower(): category for k in keys}}

    return reduce(add, PRODUCT_CATEGORIES, {})


_LOOKUP = _build_lookup()


def category_by_id(category_id: str) -> Optional[Category]:
    return _BY_ID.get(category_id)


def detect_from_name(name: str) -> Optional[Category]:
    lowered = (name or "").lower()
    category_id = next(
        (cid for cid, words in KEYWORD_RULES if any(w in lowered for w in words)),
        None,
    )
    return _BY_ID.get(category_id) if category_id else None


def normalize_category(product: Product) -> CategoryMatch:
    raw = product.category
    key = (raw or "").strip().lower()

    if key not in GENERIC_CATEGORIES and key in _LOOKUP:
        found = _LOOKUP[key]
        return CategoryMatch(found.id, found.label, "exact")

    detected = detect_from_name(product.name)
    if detected is not None:
        return CategoryMatch(detected.id, detected.label, "keyword")

    log.warning("product %s: unmapped category %r", product.id, raw)
    return CategoryMatch(raw, raw, "fallback")


# ============ Stock ============


def derive_status(product: Product) -> str:
    """
    Stock decides first; only a product with healthy stock shows its
    publish intent. Whatever status is stored on the record is ignored.
    """
    if product.stock <= 0:
        return OUT_OF_STOCK
    if product.stock <= product.low_stock_threshold:
        return LOW_STOCK
    return ACTIVE if product.is_published else DRAFT


def stock_summary(products: Tuple[Product, ...]) -> dict:
    statuses = tuple(map(derive_status, products))
    low = tuple(p for p, s in zip(products, statuses) if s == LOW_STOCK)
    out = tuple(p for p, s in zip(products, statuses) if s == OUT_OF_STOCK)
    return {
        "counts": {s: statuses.count(s) for s in PRODUCT_STATUSES},
        "low_stock": tuple(sorted(low, key=lambda p: p.stock)),
        "out_of_stock": out,
        "stale": tuple(p.id for p, s in zip(products, statuses) if p.status and p.status != s),
    }


def generate_sku(category: Optional[str], name: Optional[str], serial: int) -> str:
    """CAT-NAM-0042 style SKU; `serial` is supplied by the caller."""
    cat_prefix = (category or "")[:3].upper() or "PRD"
    name_prefix = (name or "")[:3].upper() or "XXX"
    return f"{cat_prefix}-{name_prefix}-{serial % 10000:04d}"
