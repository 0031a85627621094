"""Static lookup tables for listing attribute extraction.

Everything here is read-only module data: tuples, frozensets and
MappingProxyType views. Tables are shared by every request, so nothing in
this module may be mutated at runtime.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Optional, Tuple

from ..models.listing import Category, Condition


# =============================================================================
# CATEGORY CLUSTERS
# =============================================================================
# A cluster is a keyword family that maps to one marketplace category.
# Specificity breaks ties during fusion: a garment-part cluster (bottoms, tops)
# is preferred over the generic "clothing" cluster.
# =============================================================================

@dataclass(frozen=True)
class CategoryCluster:
    """Keyword family for one category cluster."""
    name: str
    category: Category
    keywords: Tuple[str, ...]
    specificity: int = 1


# Bottom-garment keywords get an extra scoring boost
BOTTOM_KEYWORDS = frozenset({
    "pants", "trousers", "jeans", "slacks", "chinos", "khakis",
    "shorts", "leggings", "joggers",
})

CATEGORY_CLUSTERS = MappingProxyType({
    "bottoms": CategoryCluster(
        "bottoms", Category.CLOTHING,
        ("pants", "trousers", "jeans", "slacks", "chinos", "khakis",
         "shorts", "leggings", "joggers", "skirt", "denim"),
        specificity=2,
    ),
    "tops": CategoryCluster(
        "tops", Category.CLOTHING,
        ("shirt", "t-shirt", "blouse", "tunic", "tank top", "polo shirt",
         "sweater", "sweatshirt", "hoodie", "cardigan", "pullover", "top"),
        specificity=2,
    ),
    "outerwear": CategoryCluster(
        "outerwear", Category.CLOTHING,
        ("jacket", "coat", "blazer", "vest", "parka", "windbreaker", "outerwear"),
        specificity=2,
    ),
    "dresses": CategoryCluster(
        "dresses", Category.CLOTHING,
        ("dress", "gown", "romper", "jumpsuit"),
        specificity=2,
    ),
    "clothing": CategoryCluster(
        "clothing", Category.CLOTHING,
        ("clothing", "apparel", "garment", "fashion", "textile", "sleeve",
         "collar", "pocket"),
    ),
    "shoes": CategoryCluster(
        "shoes", Category.SHOES,
        ("shoe", "boot", "sneaker", "sandal", "heel", "footwear", "loafer"),
    ),
    "electronics": CategoryCluster(
        "electronics", Category.ELECTRONICS,
        ("electronics", "computer", "phone", "camera", "television", "laptop",
         "tablet", "headphones", "speaker", "gadget"),
    ),
    "home_garden": CategoryCluster(
        "home_garden", Category.HOME_GARDEN,
        ("furniture", "lamp", "vase", "plant", "tool", "kitchen", "home",
         "garden", "appliance", "tableware"),
    ),
    "toys_games": CategoryCluster(
        "toys_games", Category.TOYS_GAMES,
        ("toy", "game", "doll", "puzzle", "board game", "video game",
         "action figure", "lego"),
    ),
    "books_media": CategoryCluster(
        "books_media", Category.BOOKS_MEDIA,
        ("book", "magazine", "cd", "dvd", "vinyl", "record", "media", "blu-ray"),
    ),
    "jewelry": CategoryCluster(
        "jewelry", Category.JEWELRY,
        ("jewelry", "jewellery", "necklace", "ring", "bracelet", "earring", "watch"),
    ),
    "accessories": CategoryCluster(
        "accessories", Category.ACCESSORIES,
        ("bag", "purse", "handbag", "wallet", "belt", "hat", "scarf",
         "sunglasses", "backpack"),
    ),
    "sports_outdoors": CategoryCluster(
        "sports_outdoors", Category.SPORTS_OUTDOORS,
        ("sports", "outdoor", "bicycle", "fitness", "camping", "hiking", "golf"),
    ),
    "collectibles": CategoryCluster(
        "collectibles", Category.COLLECTIBLES,
        ("collectible", "antique", "vintage", "art", "coin", "stamp", "memorabilia"),
    ),
})


def cluster_category(cluster_name: Optional[str]) -> Category:
    """Marketplace category for a cluster name (OTHER when unknown)."""
    if not cluster_name:
        return Category.OTHER
    cluster = CATEGORY_CLUSTERS.get(cluster_name)
    return cluster.category if cluster else Category.OTHER


# =============================================================================
# BRANDS
# =============================================================================
# Canonical display name -> surface aliases (lowercase). Aliases cover
# misspellings, abbreviations, sub-brands and well-known model lines.
# =============================================================================

BRAND_ALIASES = MappingProxyType({
    # Electronics
    "Apple": ("apple", "iphone", "ipad", "macbook", "airpods", "imac"),
    "Samsung": ("samsung", "galaxy"),
    "Sony": ("sony", "playstation", "bravia", "walkman"),
    "Canon": ("canon", "eos", "powershot"),
    "Nikon": ("nikon", "coolpix"),
    "Microsoft": ("microsoft", "xbox"),
    "Nintendo": ("nintendo", "game boy", "gamecube"),
    "Dell": ("dell", "inspiron", "alienware"),
    "Lenovo": ("lenovo", "thinkpad", "ideapad"),
    "Bose": ("bose", "quietcomfort", "soundlink"),

    # Luxury
    "Gucci": ("gucci", "guccissima"),
    "Prada": ("prada",),
    "Louis Vuitton": ("louis vuitton", "vuitton"),
    "Chanel": ("chanel",),
    "Burberry": ("burberry", "nova check"),
    "Versace": ("versace",),
    "Armani": ("armani", "giorgio armani", "emporio armani"),
    "Saint Laurent": ("saint laurent", "ysl", "yves saint laurent"),

    # Athletic
    "Nike": ("nike", "swoosh", "air jordan", "air max"),
    "Adidas": ("adidas", "three stripes", "ultraboost"),
    "Puma": ("puma",),
    "Reebok": ("reebok",),
    "Converse": ("converse", "chuck taylor"),
    "Vans": ("vans", "off the wall"),
    "New Balance": ("new balance",),
    "Under Armour": ("under armour", "underarmour", "under armor"),
    "Lululemon": ("lululemon",),
    "Champion": ("champion",),

    # Denim
    "Levi's": ("levi's", "levis", "levi", "levi strauss", "501", "505", "511"),
    "Wrangler": ("wrangler",),
    "Lee": ("lee jeans",),
    "Diesel": ("diesel",),
    "True Religion": ("true religion",),
    "7 For All Mankind": ("7 for all mankind", "seven for all mankind"),
    "Lucky Brand": ("lucky brand",),

    # Department store
    "Calvin Klein": ("calvin klein", "ck calvin klein"),
    "Tommy Hilfiger": ("tommy hilfiger", "hilfiger"),
    "Polo Ralph Lauren": ("polo ralph lauren", "ralph lauren", "polo by ralph lauren"),
    "Lacoste": ("lacoste",),
    "Hugo Boss": ("hugo boss",),
    "Brooks Brothers": ("brooks brothers",),
    "Banana Republic": ("banana republic",),
    "J.Crew": ("j.crew", "j crew", "jcrew"),
    "Gap": ("gap", "gap kids", "babygap"),
    "Old Navy": ("old navy",),
    "Ann Taylor": ("ann taylor",),
    "Loft": ("ann taylor loft",),
    "Express": ("express",),

    # Fast fashion
    "Zara": ("zara",),
    "H&M": ("h&m", "hennes & mauritz", "hennes"),
    "Uniqlo": ("uniqlo",),
    "Forever 21": ("forever 21", "forever21"),

    # American casual
    "American Eagle": ("american eagle", "aeo"),
    "Abercrombie & Fitch": ("abercrombie & fitch", "abercrombie", "a&f"),
    "Hollister": ("hollister",),

    # Outdoor
    "Patagonia": ("patagonia",),
    "The North Face": ("the north face", "north face", "northface", "tnf"),
    "Columbia": ("columbia sportswear", "columbia"),
    "L.L.Bean": ("l.l.bean", "l.l. bean", "ll bean"),
    "Eddie Bauer": ("eddie bauer",),
    "Arc'teryx": ("arc'teryx", "arcteryx"),

    # Accessories
    "Coach": ("coach",),
    "Michael Kors": ("michael kors",),
    "Kate Spade": ("kate spade",),
    "Tory Burch": ("tory burch",),
    "Fossil": ("fossil",),

    # Watches
    "Rolex": ("rolex", "submariner", "datejust"),
    "Omega": ("omega", "speedmaster", "seamaster"),
    "Casio": ("casio", "g-shock"),
    "Seiko": ("seiko",),

    # Target / store brands
    "Goodfellow & Co": ("goodfellow & co", "goodfellow"),
    "Universal Thread": ("universal thread",),
    "Talbots": ("talbots",),
    "Eileen Fisher": ("eileen fisher",),
    "Madewell": ("madewell",),
})

# Reverse index: alias -> canonical display name
BRAND_ALIAS_INDEX = MappingProxyType({
    alias: canonical
    for canonical, aliases in BRAND_ALIASES.items()
    for alias in aliases + (canonical.lower(),)
})

PREMIUM_BRANDS = frozenset({
    "Apple", "Rolex", "Omega", "Gucci", "Prada", "Louis Vuitton", "Chanel",
    "Burberry", "Versace", "Saint Laurent", "Arc'teryx",
})


# =============================================================================
# COLORS / MATERIALS / CONDITION
# =============================================================================

COLOR_PALETTE = (
    "black", "white", "gray", "grey", "brown", "tan", "beige", "cream", "ivory",
    "taupe", "khaki", "charcoal",
    "red", "pink", "rose", "burgundy", "maroon",
    "blue", "navy", "teal", "turquoise", "aqua",
    "green", "olive", "lime", "mint", "sage",
    "yellow", "gold", "mustard",
    "orange", "coral", "peach",
    "purple", "violet", "lavender", "plum", "magenta",
    "silver", "bronze", "copper",
    "multicolor",
)

MATERIAL_KEYWORDS = (
    "cotton", "polyester", "wool", "silk", "linen", "rayon", "viscose",
    "spandex", "elastane", "lycra", "modal", "bamboo", "cashmere",
    "denim", "canvas", "leather", "suede", "fleece", "nylon", "acrylic",
)

# Checked in order: more specific phrases first
CONDITION_KEYWORDS = (
    (Condition.NEW, ("new with tags", "nwt", "brand new", "new in box", "nib", "tags attached")),
    (Condition.LIKE_NEW, ("like new", "nwot", "mint", "excellent", "pristine")),
    (Condition.POOR, ("damaged", "broken", "cracked", "torn", "ripped", "stained", "for parts")),
    (Condition.GOOD, ("good", "gently used", "pre-owned", "preowned")),
    (Condition.FAIR, ("fair", "well worn", "worn", "used", "pilling", "faded")),
)

PLACEHOLDER_VALUES = frozenset({
    "", "unknown", "unbranded", "n/a", "na", "none", "null", "not visible",
    "not found", "unspecified", "-",
})


# =============================================================================
# SIZE PATTERNS
# =============================================================================
# Each size domain owns a family of structural patterns. Every pattern carries
# a normalizer that turns a match into a canonical candidate string, and a
# base score (structural pair patterns are worth more than bare letters).
# =============================================================================

@dataclass(frozen=True)
class SizePattern:
    """One structural size pattern."""
    regex: "re.Pattern[str]"
    template: str  # str.format template over the match groups
    score: float = 1.0
    case: str = "upper"  # upper, title or keep
    implies_cluster: bool = True  # False for forms that also read as dimensions

    def normalize(self, match: "re.Match[str]") -> str:
        value = self.template.format(*(g or "" for g in match.groups()))
        value = " ".join(value.split())
        if self.case == "upper":
            return value.upper()
        if self.case == "title":
            return value.title()
        return value


def _p(
    pattern: str,
    template: str,
    score: float = 1.0,
    flags: int = re.IGNORECASE,
    case: str = "upper",
    implies_cluster: bool = True,
) -> SizePattern:
    return SizePattern(re.compile(pattern, flags), template, score, case, implies_cluster)


SIZE_PATTERNS = MappingProxyType({
    "apparel": (
        # Letter sizes are case-sensitive: lowercase "s"/"m" in prose is noise
        _p(r"(?<![\w'’])(XXS|XS|S|M|L|XL|XXL|XXXL|[2-6]XL)(?![\w'’])", "{0}", flags=0),
        _p(r"\b(extra small|small|medium|large|extra large)\b", "{0}", case="title"),
        _p(r"\b([1-6]X)\b", "{0}"),
        _p(r"\b((?:1[6-9]|2[0-8])W)\b", "{0}"),
        _p(r"\b(\d{1,2}[AT])\b", "{0}", score=2.0),
        _p(r"\b(?:US|UK|EU|FR|IT)\s*(\d{1,2})\b(?!\s*[./]\d)", "{0}"),
        _p(r"\bSize\s*(0|2|4|6|8|10|12|14|16|18|20|22|24)\b", "{0}"),
        _p(r"\b(petite|tall)\s+(XS|S|M|L|XL)\b", "{1} {0}", case="title"),
    ),
    "pants": (
        _p(r"\b(\d{2})\s*[xX×]\s*(\d{2})\b", "{0}x{1}", score=2.0, case="keep", implies_cluster=False),
        _p(r"\bW\s*(\d{2})\s*L\s*(\d{2})\b", "{0}x{1}", score=2.0, case="keep"),
        _p(r"\b(\d{2})\s*W\s*(\d{2})\s*L\b", "{0}x{1}", score=2.0, case="keep"),
        _p(r"\b(2[4-9]|[34]\d)\s*/\s*(2[6-9]|3[0-8])\b", "{0}x{1}", score=2.0, case="keep", implies_cluster=False),
        _p(r"\b(?:Waist|W)\s*(2[4-9]|[34]\d)\b(?!\s*L)", "W{0}", case="keep"),
    ),
    "footwear": (
        _p(r"\b(?:US|UK|EU)\s*(\d{1,2}(?:\.5)?)\s*(?:M|W|D|B|EE|EEE)?\s*(?:shoe|men|women)s?\b", "{0}"),
        _p(r"\b(\d{1,2}(?:\.5)?)\s*(D|EE|EEE|Wide|Narrow)\b", "{0} {1}"),
    ),
    "bra": (
        _p(r"\b(2[8-9]|3\d|4[0-8])\s?(AA|DDD|DD|[A-H])\b", "{0}{1}", score=2.0, flags=0),
    ),
    "ring": (
        _p(r"\bRing\s*Size\s*(\d{1,2}(?:\.\d{1,2})?)\b", "Ring {0}", case="title"),
    ),
    "one_size": (
        _p(r"\b(one size fits all|one size|osfa|os|free size)\b", "One Size", case="title"),
    ),
})

# Size domain -> category cluster implied by a match
SIZE_DOMAIN_CLUSTERS = MappingProxyType({
    "pants": "bottoms",
})


# =============================================================================
# SIZE VOCABULARY (standardization)
# =============================================================================

@dataclass(frozen=True)
class SizeMapping:
    """Maps a size token to the controlled vocabulary."""
    regex: "re.Pattern[str]"
    output: str
    confidence: float
    compliant: bool = True


def _m(pattern: str, output: str, confidence: float = 0.95, compliant: bool = True) -> SizeMapping:
    return SizeMapping(re.compile(pattern, re.IGNORECASE), output, confidence, compliant)


SIZE_VOCABULARY = (
    _m(r"^(xxs|2xs|xx-small)$", "XX Small"),
    _m(r"^(xs|extra\s?small|x-small)$", "Extra Small"),
    _m(r"^(s|sm|small)$", "Small"),
    _m(r"^(m|md|med|medium)$", "Medium"),
    _m(r"^(l|lg|large)$", "Large"),
    _m(r"^(xl|extra\s?large|x-large)$", "Extra Large"),
    _m(r"^(xxl|2xl|xx-large|2x-large)$", "2X Large"),
    _m(r"^(xxxl|3xl|xxx-large|3x-large)$", "3X Large"),
    _m(r"^(4xl|xxxxl|4x-large)$", "4X Large"),
    _m(r"^(5xl|xxxxxl|5x-large)$", "5X Large"),
    _m(r"^(?:plus\s?)?([1-6]x)$", "{0}", 0.9),
    _m(r"^((?:1[6-9]|2[0-8])w)$", "{0}", 0.9),
    # Waist x length
    _m(r"^(\d{2})\s*[x×/]\s*(\d{2})$", "{0}x{1}"),
    _m(r"^w\s*(\d{2})\s*l\s*(\d{2})$", "{0}x{1}"),
    _m(r"^(\d{2})w\s*(\d{2})l$", "{0}x{1}"),
    _m(r"^w\s?(\d{2})$", "{0}", 0.85),
    _m(r"^(one size|one size fits all|os|osfa|free size)$", "One Size", 0.9),
    _m(r"^(\d{1,2}[at])$", "{0}", 0.85),
    _m(r"^(\d{1,2}(?:\.5)?)$", "{0}", 0.8),
    _m(r"^(petite|tall)\s+(xs|s|m|l|xl)$", "{1} {0}", 0.85),
    _m(r"^(xs|s|m|l|xl)\s+(petite|tall)$", "{0} {1}", 0.85),
)

PLUS_SIZE_PATTERN = re.compile(r"[2-9]X|\b(?:1[6-9]|2\d)W\b", re.IGNORECASE)
WAIST_LENGTH_PATTERN = re.compile(r"^(\d{2})x(\d{2})$")


# =============================================================================
# ITEM-TYPE FAMILIES & MARKETPLACE ASPECTS
# =============================================================================

GARMENT_TOP = "top"
GARMENT_BOTTOM = "bottom"

TOP_ONLY_ASPECTS = frozenset({"Sleeve Length", "Neckline"})
BOTTOM_ONLY_ASPECTS = frozenset({"Rise", "Inseam", "Waist Size"})

DEPARTMENTS = ("Men", "Women", "Unisex Adult", "Boys", "Girls")
SIZE_TYPES = ("Regular", "Plus", "Petite", "Big & Tall", "Maternity")
SEASONS = ("Spring", "Summer", "Fall", "Winter", "All Seasons")


@dataclass(frozen=True)
class AspectSpec:
    """One marketplace item-specific field."""
    name: str
    required: bool = False
    allowed_values: Optional[Tuple[str, ...]] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "required": self.required,
            "allowedValues": list(self.allowed_values) if self.allowed_values else None,
        }


_CORE_ASPECTS = (
    AspectSpec("Brand", True),
    AspectSpec("Department", True, DEPARTMENTS),
    AspectSpec("Type", True),
    AspectSpec("Size Type", True, SIZE_TYPES),
    AspectSpec("Size", True),
    AspectSpec("Color"),
)


@dataclass(frozen=True)
class ItemFamily:
    """Item-type family: keywords that select it and the aspects it allows."""
    name: str
    keywords: Tuple[str, ...]
    garment_part: Optional[str]
    aspects: Tuple[AspectSpec, ...]

    @property
    def aspect_names(self) -> frozenset:
        return frozenset(a.name for a in self.aspects)


# Resolution order matters: outerwear before jeans (a denim jacket is not a
# bottom), t-shirts before shirts, jeans/shorts before pants
ITEM_FAMILIES = (
    ItemFamily(
        "outerwear",
        ("jacket", "coat", "blazer", "vest", "parka", "windbreaker", "outerwear"),
        GARMENT_TOP,
        _CORE_ASPECTS + (
            AspectSpec("Material", allowed_values=("Denim", "Leather", "Wool", "Cotton", "Polyester", "Nylon", "Fleece")),
            AspectSpec("Pattern", allowed_values=("Solid", "Striped", "Plaid", "Camouflage")),
            AspectSpec("Sleeve Length", allowed_values=("Long Sleeve", "Short Sleeve", "Sleeveless")),
            AspectSpec("Neckline", allowed_values=("Collared", "Hooded", "Crew Neck", "V-Neck", "Mock Neck")),
            AspectSpec("Fit", allowed_values=("Slim Fit", "Regular Fit", "Relaxed Fit", "Oversized")),
            AspectSpec("Closure", allowed_values=("Button", "Zip", "Snap", "Pullover", "Open Front")),
            AspectSpec("Features", allowed_values=("Pockets", "Hood", "Lined", "Insulated", "Water Resistant")),
            AspectSpec("Occasion", allowed_values=("Casual", "Business", "Outdoor", "Work")),
            AspectSpec("Season", allowed_values=SEASONS),
            AspectSpec("Style"),
        ),
    ),
    ItemFamily(
        "tshirts", ("t-shirt", "tshirt", "tee", "tank", "tank top"), GARMENT_TOP,
        _CORE_ASPECTS + (
            AspectSpec("Material", allowed_values=("Cotton", "Polyester", "Cotton Blend", "Tri-Blend")),
            AspectSpec("Pattern", allowed_values=("Solid", "Striped", "Graphic Print")),
            AspectSpec("Sleeve Length", allowed_values=("Short Sleeve", "Long Sleeve", "Sleeveless", "Cap Sleeve")),
            AspectSpec("Neckline", allowed_values=("Crew Neck", "V-Neck", "Scoop Neck", "Henley", "Tank")),
            AspectSpec("Fit", allowed_values=("Slim Fit", "Regular Fit", "Relaxed Fit", "Oversized")),
            AspectSpec("Features", allowed_values=("Graphic Print", "Logo", "Embroidered", "Vintage", "Pockets")),
            AspectSpec("Occasion", allowed_values=("Casual", "Athletic", "Beach")),
            AspectSpec("Season", allowed_values=("Spring", "Summer", "All Seasons")),
            AspectSpec("Style"),
        ),
    ),
    ItemFamily(
        "shirts", ("shirt", "blouse", "top", "tunic", "polo", "button-down", "button down"), GARMENT_TOP,
        _CORE_ASPECTS + (
            AspectSpec("Material", allowed_values=("Cotton", "Polyester", "Silk", "Linen", "Viscose", "Modal")),
            AspectSpec("Pattern", allowed_values=("Solid", "Striped", "Plaid", "Floral", "Checkered")),
            AspectSpec("Sleeve Length", allowed_values=("Long Sleeve", "Short Sleeve", "3/4 Sleeve", "Sleeveless")),
            AspectSpec("Neckline", allowed_values=("Crew Neck", "V-Neck", "Scoop Neck", "Button Down Collar", "Spread Collar")),
            AspectSpec("Fit", allowed_values=("Slim Fit", "Regular Fit", "Relaxed Fit", "Tailored", "Oversized")),
            AspectSpec("Closure", allowed_values=("Button", "Zip", "Pullover")),
            AspectSpec("Features", allowed_values=("Pockets", "French Cuffs", "Wrinkle Free")),
            AspectSpec("Occasion", allowed_values=("Casual", "Business", "Work", "Party")),
            AspectSpec("Season", allowed_values=SEASONS),
            AspectSpec("Style"),
        ),
    ),
    ItemFamily(
        "jeans", ("jeans", "jean", "denim"), GARMENT_BOTTOM,
        _CORE_ASPECTS + (
            AspectSpec("Material", allowed_values=("100% Cotton", "Cotton Blend", "Stretch Denim", "Raw Denim")),
            AspectSpec("Wash", allowed_values=("Dark Wash", "Medium Wash", "Light Wash", "Stone Wash", "Acid Wash", "Distressed")),
            AspectSpec("Fit", allowed_values=("Skinny", "Slim", "Straight", "Regular", "Relaxed", "Bootcut", "Flare")),
            AspectSpec("Rise", allowed_values=("Low Rise", "Mid Rise", "High Rise")),
            AspectSpec("Inseam"),
            AspectSpec("Waist Size"),
            AspectSpec("Features", allowed_values=("Distressed", "Ripped", "Faded", "Embroidered", "Pockets")),
            AspectSpec("Occasion", allowed_values=("Casual", "Work")),
            AspectSpec("Style", allowed_values=("Vintage", "Classic", "Modern", "Streetwear")),
        ),
    ),
    ItemFamily(
        "shorts", ("shorts", "short pants"), GARMENT_BOTTOM,
        _CORE_ASPECTS + (
            AspectSpec("Material", allowed_values=("Cotton", "Polyester", "Nylon", "Spandex", "Cotton Blend")),
            AspectSpec("Pattern", allowed_values=("Solid", "Striped", "Plaid", "Floral")),
            AspectSpec("Fit", allowed_values=("Slim", "Regular", "Relaxed", "Cargo", "Board", "Athletic")),
            AspectSpec("Inseam", allowed_values=('5"', '7"', '9"', '11"', '13"')),
            AspectSpec("Waist Size"),
            AspectSpec("Closure", allowed_values=("Button Fly", "Zip Fly", "Drawstring", "Elastic Waist")),
            AspectSpec("Features", allowed_values=("Pockets", "Cargo Pockets", "Belt Loops", "Quick Dry")),
            AspectSpec("Occasion", allowed_values=("Casual", "Beach", "Athletic", "Work")),
            AspectSpec("Season", allowed_values=("Spring", "Summer", "All Seasons")),
        ),
    ),
    ItemFamily(
        "pants", ("pants", "trousers", "slacks", "chinos", "khakis", "joggers", "leggings"), GARMENT_BOTTOM,
        _CORE_ASPECTS + (
            AspectSpec("Material", allowed_values=("Cotton", "Polyester", "Wool", "Denim", "Linen", "Spandex", "Viscose")),
            AspectSpec("Pattern", allowed_values=("Solid", "Striped", "Plaid", "Checkered")),
            AspectSpec("Fit", allowed_values=("Slim", "Regular", "Relaxed", "Straight", "Bootcut", "Tapered", "Wide Leg")),
            AspectSpec("Rise", allowed_values=("Low Rise", "Mid Rise", "High Rise")),
            AspectSpec("Inseam"),
            AspectSpec("Waist Size"),
            AspectSpec("Closure", allowed_values=("Button Fly", "Zip Fly", "Hook & Eye", "Drawstring")),
            AspectSpec("Features", allowed_values=("Pockets", "Belt Loops", "Pleats", "Cuffs", "Wrinkle Resistant")),
            AspectSpec("Occasion", allowed_values=("Casual", "Business", "Work", "Athletic")),
            AspectSpec("Season", allowed_values=SEASONS),
            AspectSpec("Style", allowed_values=("Classic", "Modern", "Preppy", "Casual")),
        ),
    ),
)

DEFAULT_FAMILY = ItemFamily(
    "default", (), None,
    _CORE_ASPECTS + (
        AspectSpec("Material", allowed_values=("Cotton", "Polyester", "Wool", "Silk")),
        AspectSpec("Pattern", allowed_values=("Solid", "Striped", "Plaid")),
        AspectSpec("Fit"),
        AspectSpec("Closure"),
        AspectSpec("Occasion", allowed_values=("Casual", "Business", "Athletic")),
        AspectSpec("Season", allowed_values=SEASONS),
        AspectSpec("Style"),
    ),
)

FAMILIES_BY_NAME = MappingProxyType({f.name: f for f in ITEM_FAMILIES + (DEFAULT_FAMILY,)})

# Fallback family when only a category cluster is known
CLUSTER_FAMILIES = MappingProxyType({
    "bottoms": "pants",
    "tops": "shirts",
    "outerwear": "outerwear",
})

_FAMILY_PATTERNS = tuple(
    (family, re.compile(r"\b(?:" + "|".join(re.escape(k) for k in family.keywords) + r")\b", re.IGNORECASE))
    for family in ITEM_FAMILIES
)


def resolve_item_family(item_type: Optional[str], cluster_name: Optional[str] = None) -> ItemFamily:
    """Pick the item-type family for an item type, falling back to the cluster."""
    if item_type:
        for family, pattern in _FAMILY_PATTERNS:
            if pattern.search(item_type):
                return family
    if cluster_name and cluster_name in CLUSTER_FAMILIES:
        return FAMILIES_BY_NAME[CLUSTER_FAMILIES[cluster_name]]
    return DEFAULT_FAMILY


# =============================================================================
# CATEGORY EXPERTISE (prompt text)
# =============================================================================

CATEGORY_EXPERTISE = MappingProxyType({
    Category.ELECTRONICS: (
        "consumer electronics and technology products",
        """ELECTRONICS LISTING OPTIMIZATION:
- Extract EXACT model numbers from device labels and stickers
- Identify the FULL model name (e.g. "Canon EOS Rebel T7", not "Canon camera")
- Include visible specifications: storage, screen size, resolution, processor, RAM
- Check for version numbers ("Gen 3", "Series X") and connectivity (WiFi, Bluetooth, USB-C, HDMI)
- Extract serial numbers, UPC codes and FCC IDs
- Note condition indicators (scratches, wear, missing parts) and included accessories""",
    ),
    Category.BOOKS_MEDIA: (
        "books, DVDs, CDs, and media products",
        """BOOKS & MEDIA LISTING OPTIMIZATION:
- Extract ISBN numbers, publication years and publisher information
- Identify edition (1st, 2nd, Revised) and format (Hardcover, Paperback, DVD, Blu-ray)
- Look for author names, directors, artists and main characters
- Identify language and region codes for media""",
    ),
    Category.HOME_GARDEN: (
        "home, kitchen, and garden products",
        """HOME & KITCHEN LISTING OPTIMIZATION:
- Focus on brand, model and capacity/size specifications
- Extract material information (stainless steel, ceramic, plastic)
- Note features like dishwasher safe, microwave safe, BPA free
- Extract dimensions, weight capacity and volume measurements""",
    ),
    Category.TOYS_GAMES: (
        "toys, games, and hobby products",
        """TOYS & GAMES LISTING OPTIMIZATION:
- Extract age recommendations and safety warnings
- Identify brand, character names and series/collection
- Note completeness (all pieces included, box condition)
- Look for item numbers, set numbers and copyright years""",
    ),
    Category.SPORTS_OUTDOORS: (
        "sporting goods and outdoor equipment",
        """SPORTS & OUTDOORS LISTING OPTIMIZATION:
- Focus on size, weight capacity and material specifications
- Extract brand, model and sport-specific features
- Identify skill level (beginner, intermediate, professional)
- Note wear patterns typical to sports equipment""",
    ),
    Category.COLLECTIBLES: (
        "collectibles, memorabilia, and vintage items",
        """COLLECTIBLES LISTING OPTIMIZATION:
- Extract year, edition and rarity information
- Identify manufacturer, series and character/subject
- Look for authentication marks, certificates or signatures
- Note packaging condition, damage, restoration or modifications""",
    ),
    Category.JEWELRY: (
        "jewelry, watches, and accessories",
        """JEWELRY & WATCHES LISTING OPTIMIZATION:
- Extract metal type and purity marks (14K, 18K, 925)
- Identify gemstones and carat information
- Note brand, model and movement type for watches
- Extract ring size, chain length or watch case size
- Look for hallmarks, maker's marks and serial numbers""",
    ),
})

DEFAULT_EXPERTISE = (
    "clothing and fashion items",
    """CLOTHING LISTING OPTIMIZATION:
- Focus on brand recognition, size accuracy and style description
- Extract gender, size, color and material information
- Look for care labels, brand tags and size labels
- Identify style elements (casual, formal, vintage, athletic)
- Extract pattern/print details and fit information""",
)


# =============================================================================
# PRICING
# =============================================================================

BASE_PRICES = MappingProxyType({
    Category.ELECTRONICS: 150.0,
    Category.CLOTHING: 25.0,
    Category.SHOES: 35.0,
    Category.JEWELRY: 45.0,
    Category.HOME_GARDEN: 30.0,
    Category.TOYS_GAMES: 20.0,
    Category.BOOKS_MEDIA: 12.0,
    Category.ACCESSORIES: 25.0,
    Category.SPORTS_OUTDOORS: 40.0,
    Category.COLLECTIBLES: 60.0,
    Category.OTHER: 25.0,
})

CONDITION_PRICE_FACTORS = MappingProxyType({
    Condition.NEW: 1.0,
    Condition.LIKE_NEW: 0.9,
    Condition.GOOD: 0.7,
    Condition.FAIR: 0.5,
    Condition.POOR: 0.3,
})
