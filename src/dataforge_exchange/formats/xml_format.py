"""
XML Format - <data><row>...</row></data> reader/writer.

The child elements of the root's first child name the columns. Every child of
the root is a row; its values are matched to columns by element name.
The file is parsed from bytes so the encoding comes from the XML declaration.

Characters a column name cannot carry as an element name are written as
_xHHHH_ escapes (Order Date -> Order_x0020_Date) and decoded on read, the
convention .NET's XmlConvert uses.
"""

import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List

from ..constants import XML_ROOT_ELEMENT, XML_ROW_ELEMENT
from ..core.dataset import TabularDataset
from .base import ExchangeFormat, FormatHandler, ReadOptions, WriteOptions, cell_text

logger = logging.getLogger(__name__)

_ESCAPE_RE = re.compile(r"_x([0-9A-Fa-f]{8}|[0-9A-Fa-f]{4})_")


def _escape(ch: str) -> str:
    code = ord(ch)
    return f"_x{code:04X}_" if code <= 0xFFFF else f"_x{code:08X}_"


def element_name(column: str) -> str:
    """Encode a column name as a valid XML element name (reversed by column_name)."""
    if not column:
        return "_"
    parts = []
    for i, ch in enumerate(column):
        if ch == "_":
            # A literal "_x0020_" in the name must not decode to a space
            parts.append(_escape(ch) if _ESCAPE_RE.match(column, i) else ch)
        elif ch.isalpha() or (i > 0 and (ch.isdecimal() or ch in ".-")):
            parts.append(ch)
        else:
            parts.append(_escape(ch))
    return "".join(parts)


def column_name(tag: str) -> str:
    """Decode the _xHHHH_ escapes of an element name."""
    return _ESCAPE_RE.sub(lambda m: chr(int(m.group(1), 16)), tag)


class XmlFormat(FormatHandler):
    """Reads and writes row-per-element XML documents."""

    format = ExchangeFormat.XML

    def _read(self, path: Path, options: ReadOptions) -> TabularDataset:
        content = path.read_bytes()
        if not content.strip():
            return TabularDataset(source_info={"root": None})

        root = ET.fromstring(content)
        records = list(root)[:options.max_rows]

        columns: List[str] = []
        if records:
            columns = [column_name(child.tag) for child in records[0]]

        dataset = TabularDataset(columns=columns, source_info={"root": root.tag})
        for record in records:
            elements = {}
            for child in record:
                elements.setdefault(column_name(child.tag), child)
            dataset.append_row([
                None if column not in elements else (elements[column].text or "")
                for column in columns
            ])
        return dataset

    def _write(self, dataset: TabularDataset, path: Path, options: WriteOptions) -> None:
        names = [element_name(c) for c in dataset.columns]
        encoded = [n for c, n in zip(dataset.columns, names) if c != n]
        if encoded:
            logger.debug(f"Escaped XML element names: {', '.join(encoded)}")

        root = ET.Element(XML_ROOT_ELEMENT)
        for row in dataset.iter_rows():
            row_element = ET.SubElement(root, XML_ROW_ELEMENT)
            for name, value in zip(names, row):
                cell = ET.SubElement(row_element, name)
                if value is not None:
                    cell.text = cell_text(value)

        ET.indent(root)
        ET.ElementTree(root).write(path, encoding=options.codec, xml_declaration=True)
