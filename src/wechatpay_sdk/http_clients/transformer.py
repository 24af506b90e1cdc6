"""
Flat XML documents used by the APIv2 (XML based) endpoints

APIv2 payloads are a single ``<xml>`` root holding one element per field.
"""

from typing import Any, Dict, Mapping, Union

from lxml import etree

ROOT_TAG = 'xml'


def _parser() -> etree.XMLParser:
    # no entity expansion, no DTD or network fetches
    return etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False, huge_tree=False)


def to_dict(xml: Union[str, bytes]) -> Dict[str, str]:
    """
    Parse an APIv2 XML document into a flat dictionary.

    Element text is kept verbatim so signed values can be checked as sent.

    Args:
        xml: The XML document

    Returns:
        dict: Element name to text, empty elements map to ``''``

    Raises:
        ValueError: If the input is not a well formed XML document or
            declares a DOCTYPE
    """
    if isinstance(xml, str):
        xml = xml.encode('utf-8')

    try:
        root = etree.fromstring(xml, _parser())
    except etree.XMLSyntaxError as e:
        raise ValueError(f"Invalid XML document: {e}") from e

    if root is None:
        raise ValueError("Invalid XML document: no root element")
    if root.getroottree().docinfo.doctype:
        raise ValueError("XML documents with a DOCTYPE are not accepted")

    return {
        child.tag: child.text if child.text is not None else ''
        for child in root
        if isinstance(child.tag, str)
    }


def to_xml(data: Mapping[str, Any], root: str = ROOT_TAG) -> str:
    """Serialize a flat mapping into an APIv2 XML document"""
    element = etree.Element(root)
    for key, value in data.items():
        if value is None:
            continue
        child = etree.SubElement(element, key)
        child.text = str(value)
    return etree.tostring(element, encoding='unicode')
