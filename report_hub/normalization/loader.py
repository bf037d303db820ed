"""
Report YAML loading.

Agents serialize reports with Ruby type tags (``!ruby/object:...``,
``!ruby/sym``). They carry no information the normalizer needs, so the
loader maps tagged mappings, sequences and scalars onto plain values.
"""

from typing import Any

import structlog
import yaml

from report_hub.core.exceptions import ArgumentError

logger = structlog.get_logger(__name__)


class ReportLoader(yaml.SafeLoader):
    """SafeLoader that accepts the agent's Ruby tags."""


def _construct_ruby_tagged(loader: ReportLoader, tag_suffix: str, node: yaml.Node) -> Any:
    if isinstance(node, yaml.MappingNode):
        return loader.construct_mapping(node, deep=True)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_scalar(node)


ReportLoader.add_multi_constructor("!ruby/", _construct_ruby_tagged)


def load_report_text(text: str) -> Any:
    """
    Decode raw report text into a generic document.

    Args:
        text: Raw YAML report text

    Returns:
        The decoded document (shape is checked by the sniffer)

    Raises:
        ArgumentError: If the text is blank or not valid YAML
    """
    if text is None or not str(text).strip():
        raise ArgumentError("Report text is blank")

    try:
        return yaml.load(text, Loader=ReportLoader)
    except yaml.YAMLError as e:
        logger.warning("Report text is not valid YAML", error=str(e))
        raise ArgumentError(f"Report text could not be parsed: {e}") from e
