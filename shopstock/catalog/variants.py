"""
Variant string helpers

Catalogue rows store variants as plain text in a few historical formats:

- "Size M - N152"            name and product code
- "(1 | 2) (Nude | Nâu)"     parent products, one group per attribute
- "1, 2 Nude"                child products
- "NTEST (29, S, Trắng)"     TPOS variant names, values in the last parentheses
"""
import re
import unicodedata

_GROUP_RE = re.compile(r'\(([^)]+)\)')


def parse_variant(variant):
    """
    Split a "name - code" variant string.

    Examples:
        "Size M - N152"   -> ("Size M", "N152")
        "2-in-1 - N152"   -> ("2-in-1", "N152")
        "- N152"          -> ("", "N152")
        "Size M"          -> ("Size M", "")
    """
    if not variant or not variant.strip():
        return '', ''

    trimmed = variant.strip()

    if ' - ' in trimmed:
        name, _, code = trimmed.partition(' - ')
        return name.strip(), code.strip()

    if trimmed.startswith('- '):
        return '', trimmed[2:].strip()

    # Legacy rows hold only the variant name
    return trimmed, ''


def format_variant(name, code):
    """Inverse of ``parse_variant``"""
    name = (name or '').strip()
    code = (code or '').strip()

    if not name and not code:
        return ''
    if not name:
        return f'- {code}'
    return f'{name} - {code}'


def get_variant_name(variant):
    return parse_variant(variant)[0]


def get_variant_code(variant):
    return parse_variant(variant)[1]


def _group_by_attribute(pairs):
    grouped = {}
    for attribute_name, value in pairs:
        grouped.setdefault(attribute_name, []).append(value)
    return grouped


def format_variant_from_attribute_values(attribute_values, is_parent=False):
    """
    Build a variant string from TPOS ``AttributeValues`` dicts
    (``{'AttributeName': ..., 'Name': ...}``).

    Parent: "(1 | 2) (Nude | Nâu | Hồng)"
    Child:  "1, 2 Nude, Nâu, Hồng" or "36"
    """
    if not attribute_values:
        return ''

    grouped = _group_by_attribute(
        (value.get('AttributeName'), value.get('Name')) for value in attribute_values
    )

    if is_parent:
        return ' '.join(f"({' | '.join(values)})" for values in grouped.values())
    return ' '.join(', '.join(values) for values in grouped.values())


def format_variant_from_attribute_lines(attribute_lines):
    """
    Build a parent variant string from TPOS ``AttributeLines``.

    Values without an attribute name are skipped and duplicates removed:
    "(Cam | Đỏ | Vàng) (Size M | Size L)"
    """
    if not attribute_lines:
        return ''

    grouped = {}
    for line in attribute_lines:
        for value in line.get('Values') or []:
            attribute_name = value.get('AttributeName')
            if not attribute_name or not attribute_name.strip():
                continue
            names = grouped.setdefault(attribute_name, [])
            if value.get('Name') not in names:
                names.append(value.get('Name'))

    return ' '.join(f"({' | '.join(values)})" for values in grouped.values())


def format_variant_for_display(variant):
    """"(1 | 2) (Nude | Nâu)" -> "1 | 2 | Nude | Nâu"; other formats unchanged"""
    if not variant or not variant.strip():
        return ''

    trimmed = variant.strip()
    if '(' not in trimmed or ')' not in trimmed:
        return trimmed

    values = []
    for group in _GROUP_RE.findall(trimmed):
        values.extend(part.strip() for part in group.split(' | '))
    return ' | '.join(value for value in values if value)


def parse_parent_variant(product_variants):
    """
    Aggregate TPOS variant names into a parent variant string, grouping
    values by their position inside the parentheses.

    ["NTEST (29, S, Trắng)", "NTEST (30, M, Đen)"] -> "(29 | 30) (S | M) (Trắng | Đen)"
    """
    if not product_variants:
        return ''

    all_parts = []
    for variant in product_variants:
        match = _GROUP_RE.search(variant.get('Name') or '')
        if match:
            all_parts.append([part.strip() for part in match.group(1).split(',')])

    if not all_parts:
        return ''

    grouped = [[] for _ in all_parts[0]]
    for parts in all_parts:
        for index, part in enumerate(parts):
            if index < len(grouped) and part not in grouped[index]:
                grouped[index].append(part)

    return ' '.join(f"({' | '.join(group)})" for group in grouped if group)


def parse_child_variant(product_name):
    """Contents of the last parenthesised group: "NTEST (FULLBOX) (35)" -> "35" """
    if not product_name:
        return ''
    matches = _GROUP_RE.findall(product_name)
    if not matches:
        return ''
    return matches[-1]


def strip_accents_upper(text):
    """Uppercase without Vietnamese diacritics: "Cà Phê Đỏ" -> "CA PHE DO" """
    text = text.replace('đ', 'd').replace('Đ', 'D')
    decomposed = unicodedata.normalize('NFD', text)
    return ''.join(ch for ch in decomposed if unicodedata.category(ch) != 'Mn').upper()


def _normalize_variant_part(part):
    part = strip_accents_upper(part.strip())
    part = part.replace('(', '').replace(')', '')
    return re.sub(r'\s+', ' ', part).strip()


def variants_match(variant1, variant2):
    """
    Case, accent and order insensitive comparison of variant strings split
    on commas or pipes. "CÀ PHÊ, 2, M" matches "2, Cà Phê, M".
    """
    if not variant1 or not variant2:
        return False

    parts1 = sorted(p for p in (_normalize_variant_part(x) for x in re.split(r'[,|]', variant1)) if p)
    parts2 = sorted(p for p in (_normalize_variant_part(x) for x in re.split(r'[,|]', variant2)) if p)
    return parts1 == parts2
