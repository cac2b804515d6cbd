"""Schema-free product feed parser.

Turns a raw XML catalog into a generic tree and locates the repeated
product nodes without relying on one fixed document layout. Known layouts
are tried first; otherwise a bounded-depth search looks for a collection
whose members look like products.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union
from xml.etree import ElementTree as ET

from catalog_sync import metrics
from catalog_sync.errors import FeedParseError, NoProductsFoundError

logger = logging.getLogger(__name__)

# Generic tree: object, array or scalar text
FeedNode = Union[Dict[str, "FeedNode"], List["FeedNode"], str]

DEFAULT_ARRAY_TAGS: FrozenSet[str] = frozenset({
    "Urun", "urun", "product", "item",  # product containers
    "Resim", "Image",  # image containers
    "Secenek",  # option/variant containers
})

# Root-to-collection paths, checked in order
DEFAULT_KNOWN_SHAPES: Tuple[Tuple[str, ...], ...] = (
    ("Root", "Urunler", "Urun"),
    ("products", "product"),
    ("urunler", "urun"),
    ("xml", "products", "product"),
    ("xml", "urunler", "urun"),
    ("items", "item"),
    ("catalog", "items", "item"),
)

DEFAULT_CONTAINER_NAMES: FrozenSet[str] = frozenset({
    "products", "urunler", "items", "product", "urun", "item",
})

# Field aliases used by the product-likeness heuristic (compared lowercased)
ID_ALIASES: FrozenSet[str] = frozenset({"id", "productid", "urunid", "urunkartiid"})
NAME_ALIASES: FrozenSet[str] = frozenset({"name", "title", "urunadi", "productname"})
PRICE_ALIASES: FrozenSet[str] = frozenset({"price", "fiyat", "satisfiyati", "saleprice"})


@dataclass(frozen=True)
class ParserConfig:
    """Settings for turning XML into a tree and finding product nodes.

    cdata_key is never produced by parse_document (CDATA comes back as
    plain text); node_text honours it for trees built by other converters
    that wrap CDATA sections, e.g. feeds pre-converted to JSON.
    """

    array_tags: FrozenSet[str] = DEFAULT_ARRAY_TAGS
    attribute_prefix: str = "@_"
    text_key: str = "#text"
    cdata_key: str = "__cdata"
    trim_values: bool = True
    known_shapes: Tuple[Tuple[str, ...], ...] = DEFAULT_KNOWN_SHAPES
    container_names: FrozenSet[str] = DEFAULT_CONTAINER_NAMES
    id_aliases: FrozenSet[str] = ID_ALIASES
    name_aliases: FrozenSet[str] = NAME_ALIASES
    price_aliases: FrozenSet[str] = PRICE_ALIASES
    max_depth: int = 5
    sample_size: int = 3


DEFAULT_PARSER_CONFIG = ParserConfig()


@dataclass
class ProductNodes:
    """Located product nodes and how they were found."""

    nodes: List[Dict[str, FeedNode]] = field(default_factory=list)
    shape: str = ""

    def __len__(self) -> int:
        return len(self.nodes)


def _local_name(tag: str) -> str:
    """Strip an XML namespace from a tag or attribute name."""
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def _clean_text(text: Optional[str], config: ParserConfig) -> str:
    if text is None:
        return ""
    return text.strip() if config.trim_values else text


def _element_to_node(elem: ET.Element, config: ParserConfig) -> FeedNode:
    """Convert an element into a FeedNode.

    Text-only elements become scalars, empty elements become "". Children
    listed in array_tags are always lists; other tags become lists only
    when repeated.
    """
    grouped: Dict[str, List[FeedNode]] = {}
    text_parts = [elem.text or ""]
    for child in elem:
        grouped.setdefault(_local_name(child.tag), []).append(_element_to_node(child, config))
        text_parts.append(child.tail or "")

    text = _clean_text("".join(text_parts), config)

    if not grouped and not elem.attrib:
        return text

    node: Dict[str, FeedNode] = {}
    for name, value in elem.attrib.items():
        node[config.attribute_prefix + _local_name(name)] = _clean_text(value, config)

    for tag, values in grouped.items():
        if tag in config.array_tags or len(values) > 1:
            node[tag] = values
        else:
            node[tag] = values[0]

    if text:
        node[config.text_key] = text

    return node


# Bare "&" and named entities other than the five XML ones, outside CDATA
_CDATA_RE = re.compile(r"(<!\[CDATA\[.*?\]\]>)", re.S)
_STRAY_AMP_RE = re.compile(r"&(?!(?:#[0-9]+|#x[0-9a-fA-F]+|amp|lt|gt|quot|apos);)")
_CDATA_BYTES_RE = re.compile(rb"(<!\[CDATA\[.*?\]\]>)", re.S)
_STRAY_AMP_BYTES_RE = re.compile(rb"&(?!(?:#[0-9]+|#x[0-9a-fA-F]+|amp|lt|gt|quot|apos);)")


def escape_stray_ampersands(text: Union[str, bytes]) -> Union[str, bytes]:
    """
    Escape "&" characters that do not start a predefined XML entity.

    "Dunlop & Co" becomes "Dunlop &amp; Co" and "&nbsp;" becomes
    "&amp;nbsp;", so the parsed text keeps the original characters.
    CDATA sections are left untouched.
    """
    if isinstance(text, bytes):
        cdata_re, amp_re, replacement, empty = _CDATA_BYTES_RE, _STRAY_AMP_BYTES_RE, b"&amp;", b""
    else:
        cdata_re, amp_re, replacement, empty = _CDATA_RE, _STRAY_AMP_RE, "&amp;", ""

    parts = cdata_re.split(text)
    return empty.join(
        part if i % 2 else amp_re.sub(replacement, part)
        for i, part in enumerate(parts)
    )


def parse_document(
    text: Union[str, bytes],
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
) -> Dict[str, FeedNode]:
    """
    Parse an XML document into a generic tree.

    CDATA sections come back as plain text. The result is keyed by the
    root element name, e.g. {"Root": {"Urunler": {"Urun": [...]}}}.
    Bytes are decoded according to the XML declaration. A document that
    only fails because of stray "&" or HTML entities such as "&nbsp;" is
    parsed again with those escaped, keeping them as literal text.

    Args:
        text: Raw XML document (str or bytes)
        config: Parser configuration

    Returns:
        Tree rooted at a single-key dict

    Raises:
        FeedParseError: If the document is not well-formed XML
    """
    if isinstance(text, bytes):
        if text.startswith(b"\xef\xbb\xbf"):
            text = text[3:]
    elif text:
        text = text.lstrip("\ufeff")

    if not text or not text.strip():
        raise FeedParseError("Feed document is empty")
    text = text.strip()

    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        try:
            root = ET.fromstring(escape_stray_ampersands(text))
        except ET.ParseError:
            raise FeedParseError(f"Feed is not valid XML: {e}") from e
        logger.warning(f"Feed contains unescaped '&' or undeclared entities, parsed leniently ({e})")

    return {_local_name(root.tag): _element_to_node(root, config)}


def node_text(value: Any, config: ParserConfig = DEFAULT_PARSER_CONFIG) -> str:
    """
    Return the plain text carried by a tree value.

    Unwraps CDATA-style {"__cdata": ...} and {"#text": ...} wrappers;
    anything else is coerced with str(). None becomes "".
    """
    if value is None:
        return ""
    if isinstance(value, dict):
        if config.cdata_key in value:
            return node_text(value[config.cdata_key], config)
        if config.text_key in value:
            return node_text(value[config.text_key], config)
        return ""
    if isinstance(value, list):
        return "".join(node_text(v, config) for v in value)
    return str(value)


def _has_field(node: Dict[str, Any], aliases: FrozenSet[str], require_value: bool) -> bool:
    for key, value in node.items():
        if key.lower() in aliases:
            if not require_value or value:
                return True
    return False


def is_product_like(node: Any, config: ParserConfig = DEFAULT_PARSER_CONFIG) -> bool:
    """
    Check whether a tree node looks like a single product.

    A product shows at least two of: an identity field, a name field,
    a price field. Identity and name must be non-empty; price only has
    to be present.
    """
    if not isinstance(node, dict):
        return False

    has_id = _has_field(node, config.id_aliases, require_value=True)
    has_name = _has_field(node, config.name_aliases, require_value=True)
    has_price = _has_field(node, config.price_aliases, require_value=False)

    return (has_id and has_name) or (has_id and has_price) or (has_name and has_price)


def is_product_collection(items: Any, config: ParserConfig = DEFAULT_PARSER_CONFIG) -> bool:
    """Check whether at least half of a small sample of a list are products."""
    if not isinstance(items, list) or not items:
        return False

    sample = items[:config.sample_size]
    product_count = sum(1 for item in sample if is_product_like(item, config))
    return product_count >= len(sample) / 2


def find_product_nodes(
    node: FeedNode,
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
    depth: int = 0,
) -> List[FeedNode]:
    """
    Depth-first search for the product collection in an unknown tree.

    Container-named fields (products, urunler, items, ...) are checked
    before generic recursion into every field. Nodes deeper than
    config.max_depth are not visited.

    Returns:
        The product collection, or [] if nothing product-like was found
    """
    if depth > config.max_depth:
        return []

    if isinstance(node, list):
        if is_product_collection(node, config):
            logger.info(f"Product collection found at depth {depth} ({len(node)} items)")
            return node

        for item in node:
            result = find_product_nodes(item, config, depth + 1)
            if result:
                return result
        return []

    if isinstance(node, dict):
        if is_product_like(node, config):
            logger.info(f"Single product found at depth {depth}")
            return [node]

        for key, value in node.items():
            if key.lower() in config.container_names and is_product_collection(value, config):
                logger.info(
                    f"Product collection found at depth {depth} under '{key}' ({len(value)} items)"
                )
                return value

        for value in node.values():
            result = find_product_nodes(value, config, depth + 1)
            if result:
                return result

    return []


def _resolve_shape(tree: Dict[str, FeedNode], path: Tuple[str, ...]) -> Optional[List[FeedNode]]:
    current: Any = tree
    for key in path:
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current if isinstance(current, list) else None


def locate_product_nodes(
    tree: Dict[str, FeedNode],
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
) -> ProductNodes:
    """
    Locate product nodes in a parsed tree.

    Known shapes are tried in order, then the heuristic search.

    Raises:
        NoProductsFoundError: If no product collection was found
    """
    logger.info(f"Feed root elements: {list(tree.keys())}")

    for path in config.known_shapes:
        nodes = _resolve_shape(tree, path)
        if nodes:
            shape = " > ".join(path)
            logger.info(f"Known feed shape detected: {shape}")
            return ProductNodes(nodes=[n for n in nodes if isinstance(n, dict)], shape=shape)

    logger.info("No known feed shape matched, searching the tree")
    nodes = find_product_nodes(tree, config)
    nodes = [n for n in nodes if isinstance(n, dict)]
    if not nodes:
        raise NoProductsFoundError("No products found in feed")

    return ProductNodes(nodes=nodes, shape="heuristic")


def extract_product_nodes(
    text: Union[str, bytes],
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
) -> ProductNodes:
    """
    Parse a raw feed and return its product nodes.

    Raises:
        FeedParseError: If the document cannot be parsed
        NoProductsFoundError: If no product collection was found
    """
    tree = parse_document(text, config)
    found = locate_product_nodes(tree, config)
    if not found.nodes:
        raise NoProductsFoundError("No products found in feed")

    metrics.feed_products_found.set(len(found.nodes))
    logger.info(f"Parsed {len(found.nodes)} product nodes ({found.shape})")
    return found
