import logging
import re
from typing import Dict, Iterable, Mapping, Optional, Tuple

from ..constants import LABEL_NS
from ..errors import ValidationError

logger = logging.getLogger("nfd-master.feature-classifier")

Labels = Dict[str, str]
ExtendedResources = Dict[str, str]

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN, _INT64_MAX = -(2 ** 63), 2 ** 63 - 1


def split_ns(key: str) -> Tuple[Optional[str], str]:
    """Split a label key into (namespace, name); namespace is None if the key has none."""
    ns, sep, name = key.partition("/")
    if not sep:
        return None, key
    return ns, name


def parse_resource_value(key: str, value: str) -> int:
    if not _INTEGER_RE.fullmatch(value):
        raise ValidationError(key, value, "extended resource value must be an integer")
    number = int(value)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ValidationError(key, value, "extended resource value out of range")
    return number


def filter_feature_labels(
        labels: Mapping[str, str],
        extra_label_ns: Iterable[str],
        label_whitelist: re.Pattern,
        extended_resource_names: Iterable[str],
) -> Tuple[Labels, ExtendedResources]:
    """
    Split reported feature labels into publishable labels and extended resources.

    Namespaced labels are dropped unless their namespace is listed in
    ``extra_label_ns``. Bare names that do not match ``label_whitelist`` are
    dropped. Labels named in ``extended_resource_names`` are moved out into
    the extended resources when their value is an integer, otherwise they are
    not published at all. The input mapping is left unmodified.
    """
    allowed_ns = set(extra_label_ns)
    publishable: Labels = {}

    for key, value in labels.items():
        ns, name = split_ns(key)

        if ns is not None and ns not in allowed_ns:
            logger.warning(f"Namespace '{ns}' is not allowed. Ignoring label '{key}'")
            continue

        if not label_whitelist.search(name):
            logger.warning(f"{name} does not match the whitelist ({label_whitelist.pattern}) and will not be published.")
            continue

        publishable[key] = value

    extended_resources: ExtendedResources = {}
    for resource_name in extended_resource_names:
        # the default label namespace is implied, keep annotations short
        resource_name = resource_name.removeprefix(LABEL_NS)
        if resource_name not in publishable:
            continue
        value = publishable.pop(resource_name)
        try:
            parse_resource_value(resource_name, value)
        except ValidationError as e:
            logger.warning(f"bad label value encountered for extended resource: {e}")
            continue
        extended_resources[resource_name] = value

    return publishable, extended_resources
