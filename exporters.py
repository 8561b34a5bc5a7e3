"""
Export module — renders an AnalysisResult as a PDF report, a Word (.docx)
report, or CSV.
"""

import io
import csv
from datetime import datetime
from typing import Optional
from xml.sax.saxutils import escape

from catalog import CANONICAL_CATEGORIES, CATEGORY_LABELS
from models import AnalysisResult


# ─────────────────────────────────────────────────────────────────────────────
# Shared helpers
# ─────────────────────────────────────────────────────────────────────────────

RISK_COLOR = {
    "low":    (76,  175, 132),   # green
    "medium": (244, 200,  66),   # yellow
    "high":   (255, 107, 122),   # red
}

DARK    = ( 13,  13,  13)
GREY    = (100, 100, 100)
LGREY   = (220, 220, 220)
GOLD    = (212, 175,  55)

DISCLAIMER = ("This report is produced by heuristic risk signals and does not constitute legal advice. "
              "For important agreements, consult a qualified legal professional.")

MAX_EXPORT_HIGHLIGHTS = 40


def _now() -> str:
    return datetime.now().strftime("%B %d, %Y at %H:%M")


def _method_label(result: AnalysisResult) -> str:
    return "AI analysis" if result.analysis_method == "ai" else "Keyword analysis"


def _category_rows(result: AnalysisResult):
    for cat in CANONICAL_CATEGORIES:
        cs = result.categories[cat]
        yield CATEGORY_LABELS[cat], cs.score, cs.risk_level, cs.summary


# ─────────────────────────────────────────────────────────────────────────────
# PDF report  (ReportLab)
# ─────────────────────────────────────────────────────────────────────────────

def export_pdf(result: AnalysisResult, title: Optional[str] = None) -> bytes:
    from reportlab.lib.pagesizes import A4
    from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
    from reportlab.lib.units import mm
    from reportlab.lib import colors
    from reportlab.platypus import (
        SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, HRFlowable,
    )

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf, pagesize=A4,
        leftMargin=20*mm, rightMargin=20*mm,
        topMargin=18*mm, bottomMargin=18*mm,
        title="T&C Risk Report",
    )
    W, _ = A4
    cw = W - 40*mm

    def rgb(t):  return colors.Color(*[v/255 for v in t])

    level = result.risk_level
    rc = rgb(RISK_COLOR.get(level, GREY))
    grey_c, lgrey_c = rgb(GREY), rgb(LGREY)

    base = getSampleStyleSheet()

    def sty(name, parent="Normal", **kw):
        return ParagraphStyle(name, parent=base[parent], **kw)

    s_title = sty("title", fontSize=20, leading=26, textColor=rgb(DARK), fontName="Helvetica-Bold")
    s_small = sty("small", fontSize=8,  leading=12, textColor=grey_c)
    s_h2    = sty("h2",    fontSize=13, leading=18, spaceBefore=12, spaceAfter=6, fontName="Helvetica-Bold")
    s_body  = sty("body",  fontSize=9,  leading=14, spaceAfter=4)

    story = [
        Paragraph("Terms &amp; Conditions Risk Report", s_title),
        Paragraph(f"{escape(title or 'Untitled document')} &middot; {_method_label(result)} &middot; "
                  f"Generated {_now()}", s_small),
        HRFlowable(width="100%", thickness=2, color=rgb(GOLD), spaceBefore=6, spaceAfter=10),
    ]

    # ── Risk banner ─────────────────────────────────────────────────────────
    banner = Table([[
        Paragraph(f"<b>{level.title()} Risk</b>", sty("rk", fontSize=14, textColor=rc, fontName="Helvetica-Bold")),
        Paragraph(escape(result.summary), sty("rs", fontSize=9, leading=13)),
        Paragraph(f"<b>{result.risk_score}/100</b>", sty("sc", fontSize=14, textColor=rc,
                                                          fontName="Helvetica-Bold", alignment=2)),
    ]], colWidths=[cw*0.2, cw*0.6, cw*0.2])
    banner.setStyle(TableStyle([
        ("BOX",          (0,0), (-1,-1), 1.5, rc),
        ("VALIGN",       (0,0), (-1,-1), "MIDDLE"),
        ("LEFTPADDING",  (0,0), (-1,-1), 10),
        ("RIGHTPADDING", (0,0), (-1,-1), 10),
        ("TOPPADDING",   (0,0), (-1,-1), 10),
        ("BOTTOMPADDING",(0,0), (-1,-1), 10),
    ]))
    story += [banner, Spacer(1, 10)]

    # ── Key points & concerns ───────────────────────────────────────────────
    story.append(Paragraph("Key Points", s_h2))
    story += [Paragraph(f"&bull; {escape(kp)}", s_body) for kp in result.key_points]

    story.append(Paragraph("Concerns", s_h2))
    story += [Paragraph(f"&bull; {escape(c)}", s_body) for c in result.risk_assessment.concerns]
    if result.risk_assessment.reasoning:
        story.append(Paragraph(f"<i>{escape(result.risk_assessment.reasoning)}</i>", s_small))

    # ── Categories ──────────────────────────────────────────────────────────
    story.append(Paragraph("Categories", s_h2))
    rows = [["Category", "Score", "Level", "Summary"]]
    for label, score, lvl, summary in _category_rows(result):
        rows.append([label, f"{score}/100", lvl.title(), Paragraph(escape(summary), s_small)])
    tbl = Table(rows, colWidths=[cw*0.22, cw*0.12, cw*0.12, cw*0.54])
    tbl.setStyle(TableStyle([
        ("BACKGROUND",  (0,0), (-1,0),  rgb(DARK)),
        ("TEXTCOLOR",   (0,0), (-1,0),  colors.white),
        ("FONTNAME",    (0,0), (-1,0),  "Helvetica-Bold"),
        ("FONTSIZE",    (0,0), (-1,-1), 8),
        ("VALIGN",      (0,0), (-1,-1), "TOP"),
        ("GRID",        (0,0), (-1,-1), 0.3, lgrey_c),
    ]))
    story.append(tbl)

    # ── Highlights ──────────────────────────────────────────────────────────
    if result.text_highlights:
        story.append(Paragraph("Highlighted Terms", s_h2))
        for h in result.text_highlights[:MAX_EXPORT_HIGHLIGHTS]:
            story.append(Paragraph(
                f"<b>{escape(h.term)}</b> &middot; {escape(h.category)} &middot; {h.severity} "
                f"(chars {h.start}&ndash;{h.end})", s_small))

    story += [
        Spacer(1, 14),
        HRFlowable(width="100%", thickness=0.5, color=lgrey_c),
        Paragraph(DISCLAIMER, sty("foot", fontSize=7, leading=10, textColor=grey_c)),
    ]

    doc.build(story)
    return buf.getvalue()


# ─────────────────────────────────────────────────────────────────────────────
# Word report  (python-docx)
# ─────────────────────────────────────────────────────────────────────────────

def export_word(result: AnalysisResult, title: Optional[str] = None) -> bytes:
    from docx import Document
    from docx.shared import Pt, RGBColor, Cm

    doc = Document()
    for section in doc.sections:
        section.top_margin    = Cm(2)
        section.bottom_margin = Cm(2)
        section.left_margin   = Cm(2.5)
        section.right_margin  = Cm(2.5)

    def add_para(text="", bold=False, italic=False, color=None, size=10):
        p = doc.add_paragraph()
        run = p.add_run(text)
        run.bold, run.italic = bold, italic
        run.font.size = Pt(size)
        if color: run.font.color.rgb = RGBColor(*color)
        return p

    heading = doc.add_heading("Terms & Conditions Risk Report", 0)
    heading.runs[0].font.color.rgb = RGBColor(*DARK)
    add_para(f"{title or 'Untitled document'}  ·  {_method_label(result)}  ·  Generated {_now()}",
             color=GREY, size=9)

    doc.add_heading("Risk Assessment", 1)
    p = doc.add_paragraph()
    run = p.add_run(f"{result.risk_level.title()} Risk  ({result.risk_score}/100)")
    run.bold = True; run.font.size = Pt(14)
    run.font.color.rgb = RGBColor(*RISK_COLOR.get(result.risk_level, GREY))
    add_para(result.summary, size=9)
    if result.risk_assessment.reasoning:
        add_para(result.risk_assessment.reasoning, italic=True, color=GREY, size=9)

    doc.add_heading("Key Points", 1)
    for kp in result.key_points:
        doc.add_paragraph(style="List Bullet").add_run(kp).font.size = Pt(9)

    doc.add_heading("Concerns", 1)
    for c in result.risk_assessment.concerns:
        run = doc.add_paragraph(style="List Bullet").add_run(c)
        run.font.size = Pt(9); run.font.color.rgb = RGBColor(220, 53, 69)

    doc.add_heading("Categories", 1)
    table = doc.add_table(rows=1, cols=4)
    table.style = "Table Grid"
    hdr = table.rows[0].cells
    hdr[0].text, hdr[1].text, hdr[2].text, hdr[3].text = "Category", "Score", "Level", "Summary"
    for label, score, lvl, summary in _category_rows(result):
        row = table.add_row().cells
        row[0].text, row[1].text, row[2].text, row[3].text = label, f"{score}/100", lvl.title(), summary

    if result.text_highlights:
        doc.add_heading("Highlighted Terms", 1)
        for h in result.text_highlights[:MAX_EXPORT_HIGHLIGHTS]:
            add_para(f"{h.term}  ·  {h.category}  ·  {h.severity}  (chars {h.start}–{h.end})", size=8)

    add_para(DISCLAIMER, italic=True, color=GREY, size=8)

    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


# ─────────────────────────────────────────────────────────────────────────────
# CSV export
# ─────────────────────────────────────────────────────────────────────────────

def export_csv(result: AnalysisResult) -> bytes:
    buf = io.StringIO()
    w = csv.writer(buf)

    w.writerow(["SECTION", "FIELD", "VALUE"])
    w.writerow(["Summary", "Risk Level",      result.risk_level])
    w.writerow(["Summary", "Risk Score",      result.risk_score])
    w.writerow(["Summary", "Analysis Method", result.analysis_method])
    w.writerow(["Summary", "Word Count",      result.word_count])
    w.writerow(["Summary", "Reading Time",    result.reading_time])
    w.writerow(["Summary", "Summary",         result.summary])
    w.writerow([])

    w.writerow(["KEY POINTS"])
    for i, kp in enumerate(result.key_points, 1):
        w.writerow([i, kp])
    w.writerow([])

    w.writerow(["CONCERNS"])
    for c in result.risk_assessment.concerns:
        w.writerow([c])
    w.writerow([])

    w.writerow(["CATEGORIES"])
    w.writerow(["Category", "Score", "Level", "Percentage", "Summary"])
    pct = {b.category: b.percentage for b in result.category_breakdown}
    for cat in CANONICAL_CATEGORIES:
        cs = result.categories[cat]
        w.writerow([CATEGORY_LABELS[cat], cs.score, cs.risk_level, pct.get(cat, 0), cs.summary])
    w.writerow([])

    w.writerow(["HIGHLIGHTS"])
    w.writerow(["Term", "Category", "Severity", "Start", "End"])
    for h in result.text_highlights:
        w.writerow([h.term, h.category, h.severity, h.start, h.end])

    return buf.getvalue().encode("utf-8-sig")  # BOM for Excel compatibility
