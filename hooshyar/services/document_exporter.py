"""
Word document exporter for Hooshyar.

Turns a health topic answer into a right-to-left .docx file.
"""

import io
import re
import zipfile
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from docx import Document
from docx.enum.style import WD_STYLE_TYPE
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement, parse_xml
from docx.oxml.ns import nsdecls, qn
from docx.shared import Pt, Twips

from hooshyar.config import settings
from hooshyar.models.schemas import HealthTopicInfo
from hooshyar.utils.logger import get_logger

logger = get_logger("document_exporter")


DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOCX_EXTENSION = ".docx"

BODY_STYLE = "RTL Style"
TITLE_STYLE = "RTL Heading 1"
SUBHEADING_STYLE = "RTL Heading 2"

PAGE_MARGIN = Twips(720)
BULLET_INDENT_LEFT = 720
BULLET_INDENT_HANGING = 360
BULLET_GLYPH = "•"

# Fixed timestamps so identical input gives identical bytes
_ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)
_DOCUMENT_TIMESTAMP = datetime(2000, 1, 1)

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')

# Elements that must follow the inserted ones inside w:pPr / w:rPr
_PPR_AFTER_BIDI = (
    "w:adjustRightInd", "w:snapToGrid", "w:spacing", "w:ind",
    "w:contextualSpacing", "w:mirrorIndents", "w:suppressOverlap", "w:jc",
    "w:textDirection", "w:textAlignment", "w:textboxTightWrap",
    "w:outlineLvl", "w:divId", "w:cnfStyle", "w:rPr", "w:sectPr",
    "w:pPrChange",
)
_RPR_AFTER_RTL = (
    "w:cs", "w:em", "w:lang", "w:eastAsianLayout", "w:specVanish", "w:oMath",
)
_RPR_AFTER_SZCS = (
    "w:highlight", "w:u", "w:effect", "w:bdr", "w:shd", "w:fitText",
    "w:vertAlign", "w:rtl",
) + _RPR_AFTER_RTL
_RPR_AFTER_BCS = (
    "w:i", "w:iCs", "w:caps", "w:smallCaps", "w:strike", "w:dstrike",
    "w:outline", "w:shadow", "w:emboss", "w:imprint", "w:noProof",
    "w:snapToGrid", "w:vanish", "w:webHidden", "w:color", "w:spacing",
    "w:w", "w:kern", "w:position", "w:sz", "w:szCs",
) + _RPR_AFTER_SZCS


@dataclass(frozen=True)
class ExportedDocument:
    """A serialized document ready for download."""
    filename: str
    content: bytes
    media_type: str = DOCX_MEDIA_TYPE


def safe_filename(topic_name: str) -> str:
    """Derive the download filename, replacing filesystem-unsafe characters."""
    return _UNSAFE_FILENAME_CHARS.sub("_", topic_name) + DOCX_EXTENSION


def _add_child(parent, tag: str, successors: tuple, **attrs) -> None:
    element = OxmlElement(tag)
    for name, value in attrs.items():
        element.set(qn(f"w:{name}"), value)
    parent.insert_element_before(element, *successors)


def _normalize_zip(blob: bytes) -> bytes:
    """Rewrite the zip container with fixed member timestamps."""
    source = zipfile.ZipFile(io.BytesIO(blob))
    target_buffer = io.BytesIO()
    with source, zipfile.ZipFile(target_buffer, "w", zipfile.ZIP_DEFLATED) as target:
        for item in source.infolist():
            info = zipfile.ZipInfo(item.filename, date_time=_ZIP_DATE_TIME)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = item.external_attr
            target.writestr(info, source.read(item.filename))
    return target_buffer.getvalue()


class DocumentExporter:
    """
    Builds right-to-left Word documents from health topic answers.

    Layout:
    - Centered title with the topic name
    - Introduction paragraph
    - Per section: right-aligned subheading, one bullet per detail
    """

    def __init__(self, font_name: Optional[str] = None, creator: Optional[str] = None):
        self.font_name = font_name or settings.document_font
        self.creator = creator or settings.document_creator

    def export(self, info: Optional[HealthTopicInfo]) -> Optional[ExportedDocument]:
        """
        Export an answer as a downloadable document.

        Args:
            info: Completed answer, or None when nothing was found yet

        Returns:
            ExportedDocument, or None if there is nothing to export
        """
        if info is None:
            return None

        content = self.build(info)
        filename = safe_filename(info.topic_name)

        logger.info(
            "Document exported",
            filename=filename,
            sections=len(info.sections),
            size_bytes=len(content)
        )
        return ExportedDocument(filename=filename, content=content)

    def build(self, info: HealthTopicInfo) -> bytes:
        """Build and serialize the document."""
        doc = Document()

        self._set_properties(doc, info)
        self._add_styles(doc)
        bullet_num_id = self._add_bullet_numbering(doc)

        section = doc.sections[0]
        section.top_margin = PAGE_MARGIN
        section.right_margin = PAGE_MARGIN
        section.bottom_margin = PAGE_MARGIN
        section.left_margin = PAGE_MARGIN

        doc.add_paragraph(info.topic_name, style=TITLE_STYLE)
        doc.add_paragraph(info.introduction, style=BODY_STYLE)

        for topic_section in info.sections:
            doc.add_paragraph(topic_section.title, style=SUBHEADING_STYLE)
            for detail in topic_section.details:
                paragraph = doc.add_paragraph(detail, style=BODY_STYLE)
                num_pr = paragraph._p.get_or_add_pPr().get_or_add_numPr()
                num_pr.get_or_add_ilvl().val = 0
                num_pr.get_or_add_numId().val = bullet_num_id

        buffer = io.BytesIO()
        doc.save(buffer)
        return _normalize_zip(buffer.getvalue())

    def _set_properties(self, doc, info: HealthTopicInfo) -> None:
        props = doc.core_properties
        props.author = self.creator
        props.title = info.topic_name
        props.subject = f"Information about {info.topic_name}"
        props.comments = f"Information about {info.topic_name}"
        props.created = _DOCUMENT_TIMESTAMP
        props.modified = _DOCUMENT_TIMESTAMP

    def _add_styles(self, doc) -> None:
        """Add the body, title and subheading paragraph styles."""
        styles = doc.styles

        body = styles.add_style(BODY_STYLE, WD_STYLE_TYPE.PARAGRAPH)
        body.base_style = styles["Normal"]
        body.quick_style = True
        self._format_style(body, size=12, bold=False, alignment=WD_ALIGN_PARAGRAPH.RIGHT)
        body.paragraph_format.space_after = Pt(6)

        title = styles.add_style(TITLE_STYLE, WD_STYLE_TYPE.PARAGRAPH)
        title.base_style = styles["Heading 1"]
        title.quick_style = True
        self._format_style(title, size=20, bold=True, alignment=WD_ALIGN_PARAGRAPH.CENTER)
        title.paragraph_format.space_after = Pt(12)

        subheading = styles.add_style(SUBHEADING_STYLE, WD_STYLE_TYPE.PARAGRAPH)
        subheading.base_style = styles["Heading 2"]
        subheading.quick_style = True
        self._format_style(subheading, size=16, bold=True, alignment=WD_ALIGN_PARAGRAPH.RIGHT)
        subheading.paragraph_format.space_before = Pt(12)
        subheading.paragraph_format.space_after = Pt(6)

        for style in (body, title, subheading):
            style.next_paragraph_style = styles["Normal"]

    def _format_style(self, style, size: int, bold: bool, alignment) -> None:
        """Apply font and right-to-left direction to a paragraph style."""
        style.font.name = self.font_name
        style.font.size = Pt(size)
        style.font.bold = bold

        # Paragraph direction must precede spacing and justification
        p_pr = style.element.get_or_add_pPr()
        _add_child(p_pr, "w:bidi", _PPR_AFTER_BIDI)
        style.paragraph_format.alignment = alignment

        r_pr = style.element.get_or_add_rPr()
        r_pr.get_or_add_rFonts().set(qn("w:cs"), self.font_name)
        if bold:
            _add_child(r_pr, "w:bCs", _RPR_AFTER_BCS)
        _add_child(r_pr, "w:szCs", _RPR_AFTER_SZCS, val=str(size * 2))
        _add_child(r_pr, "w:rtl", _RPR_AFTER_RTL)

    def _add_bullet_numbering(self, doc) -> int:
        """Register a right-to-left bullet list definition and return its numId."""
        numbering = doc.part.numbering_part.element

        existing = [int(value) for value in numbering.xpath("./w:abstractNum/@w:abstractNumId")]
        abstract_id = max(existing, default=-1) + 1

        abstract_num = parse_xml(
            f'<w:abstractNum {nsdecls("w")} w:abstractNumId="{abstract_id}">'
            '<w:multiLevelType w:val="singleLevel"/>'
            '<w:lvl w:ilvl="0">'
            '<w:start w:val="1"/>'
            '<w:numFmt w:val="bullet"/>'
            f'<w:lvlText w:val="{BULLET_GLYPH}"/>'
            '<w:lvlJc w:val="right"/>'
            '<w:pPr><w:bidi/>'
            f'<w:ind w:left="{BULLET_INDENT_LEFT}" w:hanging="{BULLET_INDENT_HANGING}"/>'
            '</w:pPr>'
            '<w:rPr><w:rtl/></w:rPr>'
            '</w:lvl>'
            '</w:abstractNum>'
        )

        # Every w:abstractNum must precede the first w:num
        first_num = numbering.find(qn("w:num"))
        if first_num is not None:
            first_num.addprevious(abstract_num)
        else:
            numbering.append(abstract_num)

        return numbering.add_num(abstract_id).numId


# Lazy-loaded singleton
_document_exporter: Optional[DocumentExporter] = None


def get_document_exporter() -> DocumentExporter:
    """Get or create document exporter singleton."""
    global _document_exporter
    if _document_exporter is None:
        _document_exporter = DocumentExporter()
    return _document_exporter
