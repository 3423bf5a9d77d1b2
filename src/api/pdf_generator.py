"""
PDF Report Generator for Washroom Quote

Generates printable PDF estimates for washroom renovation quotes.
"""

from io import BytesIO
from datetime import datetime
from typing import Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import (
    SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, HRFlowable
)
from reportlab.lib.enums import TA_CENTER, TA_LEFT

from calculator import EstimateBreakdown, PlumbingRequirement, ProjectType, SelectionSet, Timeline


# Helvetica has no rupee glyph
CURRENCY = "Rs."


def _money(amount: float) -> str:
    return f"{CURRENCY} {amount:,.2f}"


class EstimatePDFGenerator:
    """Generates PDF reports for washroom estimates."""

    # Brand colors
    PRIMARY_COLOR = colors.HexColor('#0EA5E9')  # Sky blue
    SECONDARY_COLOR = colors.HexColor('#1F2937')  # Dark gray
    DISCOUNT_COLOR = colors.HexColor('#16A34A')  # Green
    LIGHT_GRAY = colors.HexColor('#F3F4F6')
    BORDER_COLOR = colors.HexColor('#E5E7EB')

    PROJECT_TYPE_LABELS = {
        ProjectType.NEW: 'New Construction',
        ProjectType.RENOVATION: 'Renovation',
    }

    PLUMBING_LABELS = {
        PlumbingRequirement.COMPLETE: 'Complete',
        PlumbingRequirement.FIXTURE_ONLY: 'Fixture Only',
    }

    TIMELINE_LABELS = {
        Timeline.STANDARD: 'Standard (4 Weeks)',
        Timeline.FLEXIBLE: 'Flexible (>4 Weeks)',
    }

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Setup custom paragraph styles."""
        self.styles.add(ParagraphStyle(
            name='ReportTitle',
            parent=self.styles['Heading1'],
            fontSize=22,
            textColor=self.SECONDARY_COLOR,
            spaceAfter=16,
            alignment=TA_LEFT
        ))

        self.styles.add(ParagraphStyle(
            name='ReportSection',
            parent=self.styles['Heading2'],
            fontSize=14,
            textColor=self.SECONDARY_COLOR,
            spaceBefore=16,
            spaceAfter=8
        ))

        self.styles.add(ParagraphStyle(
            name='ReportBody',
            parent=self.styles['Normal'],
            fontSize=10,
            textColor=self.SECONDARY_COLOR,
            spaceAfter=6
        ))

        self.styles.add(ParagraphStyle(
            name='ReportSmall',
            parent=self.styles['Normal'],
            fontSize=8,
            textColor=colors.gray,
            spaceAfter=4
        ))

        self.styles.add(ParagraphStyle(
            name='ReportFooter',
            parent=self.styles['Normal'],
            fontSize=8,
            textColor=colors.gray,
            alignment=TA_CENTER
        ))

    def generate_report(
        self,
        selections: SelectionSet,
        breakdown: EstimateBreakdown,
        brand_name: Optional[str] = None,
        timeline_totals: Optional[Dict[str, float]] = None,
        using_defaults: bool = False,
    ) -> BytesIO:
        """
        Generate a PDF report for a washroom estimate.

        Returns: BytesIO buffer containing the PDF
        """
        buffer = BytesIO()

        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=0.75*inch,
            leftMargin=0.75*inch,
            topMargin=0.75*inch,
            bottomMargin=0.75*inch,
            title="Washroom Estimate",
        )

        story = []
        story.extend(self._build_header(selections))
        story.extend(self._build_project_details(selections, brand_name))
        story.extend(self._build_tiling_table(breakdown))
        story.extend(self._build_cost_table(breakdown, selections, brand_name))
        if timeline_totals:
            story.extend(self._build_timeline_comparison(timeline_totals, selections.timeline))
        story.extend(self._build_footer(using_defaults))

        doc.build(story)
        buffer.seek(0)
        return buffer

    def _build_header(self, selections: SelectionSet) -> List:
        """Build the report header."""
        elements = []

        elements.append(Paragraph('<b>Your Washroom Estimate</b>', self.styles['ReportTitle']))

        customer = selections.customer
        if customer.name:
            elements.append(Paragraph(
                f'<b>Prepared for:</b> {escape(customer.name)}',
                self.styles['ReportBody']
            ))

        elements.append(Paragraph(
            f'<b>Generated:</b> {datetime.now().strftime("%B %d, %Y at %I:%M %p")}',
            self.styles['ReportBody']
        ))

        elements.append(Spacer(1, 8))
        elements.append(HRFlowable(
            width="100%",
            thickness=1,
            color=self.BORDER_COLOR,
            spaceAfter=12
        ))

        return elements

    def _build_project_details(self, selections: SelectionSet, brand_name: Optional[str]) -> List:
        """Build the project details section."""
        elements = [Paragraph('Project Details', self.styles['ReportSection'])]

        dims = selections.dimensions
        customer = selections.customer
        data = [
            ['Project Type', self.PROJECT_TYPE_LABELS.get(selections.project_type, 'Not specified')],
            ['Dimensions', f'{dims.length:g} x {dims.width:g} x {dims.height:g} feet'],
            ['Timeline', self.TIMELINE_LABELS.get(selections.timeline, 'Standard (4 Weeks)')],
            ['Selected Brand', brand_name or 'Not selected'],
        ]
        for label, value in (('Email', customer.email), ('Phone', customer.phone), ('Location', customer.location)):
            if value:
                data.append([label, value])

        table = Table(data, colWidths=[2*inch, 4*inch])
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (0, -1), self.LIGHT_GRAY),
            ('TEXTCOLOR', (0, 0), (-1, -1), self.SECONDARY_COLOR),
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
            ('TOPPADDING', (0, 0), (-1, -1), 6),
            ('GRID', (0, 0), (-1, -1), 0.5, self.BORDER_COLOR),
        ]))

        elements.append(table)
        return elements

    def _build_tiling_table(self, breakdown: EstimateBreakdown) -> List:
        """Build the tiling work table."""
        elements = [Paragraph('Tiling Work', self.styles['ReportSection'])]

        data = [
            ['Item', 'Quantity'],
            ['Floor Area', f'{breakdown.floor_area:,.2f} sq ft'],
            ['Wall Area', f'{breakdown.wall_area:,.2f} sq ft'],
            ['Total Area', f'{breakdown.total_area:,.2f} sq ft'],
            ['Initial Tile Quantity', f'{breakdown.tile_quantity_initial} tiles'],
            ['Tile Quantity with Breakage', f'{breakdown.tile_quantity_with_breakage} tiles'],
            ['Tile Material Cost', _money(breakdown.tile_material_cost)],
            ['Tiling Labor Cost', _money(breakdown.tiling_labor_cost)],
            ['Total Tiling Cost', _money(breakdown.total_tiling_cost)],
        ]

        table = Table(data, colWidths=[3*inch, 3*inch])
        table.setStyle(TableStyle([
            # Header
            ('BACKGROUND', (0, 0), (-1, 0), self.PRIMARY_COLOR),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            # Body
            ('TEXTCOLOR', (0, 1), (-1, -1), self.SECONDARY_COLOR),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 5),
            ('TOPPADDING', (0, 0), (-1, -1), 5),
            ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, self.LIGHT_GRAY]),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 0.5, self.BORDER_COLOR),
        ]))

        elements.append(table)
        return elements

    def _build_cost_table(
        self,
        breakdown: EstimateBreakdown,
        selections: SelectionSet,
        brand_name: Optional[str],
    ) -> List:
        """Build the cost estimate table."""
        elements = [Paragraph('Estimate Breakdown', self.styles['ReportSection'])]

        data = [['Item', 'Amount']]
        discount_row = None
        for label, amount in breakdown.line_items():
            if label == 'Plumbing' and selections.plumbing_requirement is not None:
                kind = self.PLUMBING_LABELS[selections.plumbing_requirement]
                label = f'Plumbing ({kind})'
            elif label == 'Brand Premium' and brand_name:
                label = f'Brand Premium ({brand_name})'
            elif label == 'Timeline Discount':
                discount_row = len(data)
            data.append([label, _money(amount)])
        data.append(['Total Estimate', _money(breakdown.total)])

        table = Table(data, colWidths=[3*inch, 3*inch])
        style_commands = [
            ('BACKGROUND', (0, 0), (-1, 0), self.PRIMARY_COLOR),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('TEXTCOLOR', (0, 1), (-1, -1), self.SECONDARY_COLOR),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
            ('TOPPADDING', (0, 0), (-1, -1), 6),
            ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
            ('GRID', (0, 0), (-1, -1), 0.5, self.BORDER_COLOR),
            # Total row
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, -1), (-1, -1), 12),
            ('TEXTCOLOR', (1, -1), (1, -1), self.PRIMARY_COLOR),
            ('LINEABOVE', (0, -1), (-1, -1), 1, self.SECONDARY_COLOR),
        ]
        if discount_row:
            style_commands.append(('TEXTCOLOR', (0, discount_row), (-1, discount_row), self.DISCOUNT_COLOR))

        table.setStyle(TableStyle(style_commands))
        elements.append(table)
        return elements

    def _build_timeline_comparison(self, timeline_totals: Dict[str, float], selected: Timeline) -> List:
        """Build the standard vs flexible timeline comparison."""
        elements = [Paragraph('Timeline Options', self.styles['ReportSection'])]

        data = [['Timeline', 'Estimated Total']]
        selected_row = None
        for timeline in Timeline:
            if timeline.value not in timeline_totals:
                continue
            label = self.TIMELINE_LABELS[timeline]
            if timeline is selected:
                selected_row = len(data)
                label = f'* {label}'
            data.append([label, _money(timeline_totals[timeline.value])])

        table = Table(data, colWidths=[3*inch, 3*inch])
        style_commands = [
            ('BACKGROUND', (0, 0), (-1, 0), self.PRIMARY_COLOR),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
            ('GRID', (0, 0), (-1, -1), 0.5, self.BORDER_COLOR),
        ]
        if selected_row:
            style_commands.extend([
                ('BACKGROUND', (0, selected_row), (-1, selected_row), colors.HexColor('#E0F2FE')),
                ('FONTNAME', (0, selected_row), (-1, selected_row), 'Helvetica-Bold'),
            ])

        table.setStyle(TableStyle(style_commands))
        elements.append(table)
        return elements

    def _build_footer(self, using_defaults: bool) -> List:
        """Build the report footer with disclaimer."""
        elements = [HRFlowable(
            width="100%",
            thickness=1,
            color=self.BORDER_COLOR,
            spaceBefore=20,
            spaceAfter=12
        )]

        disclaimer = """
        <b>Disclaimer:</b> This is an indicative estimate for planning purposes only.
        Final pricing depends on a site visit, material availability and the exact
        fittings chosen. Taxes, permits and civil work beyond tiling are not included.
        """
        elements.append(Paragraph(disclaimer.strip(), self.styles['ReportSmall']))

        if using_defaults:
            elements.append(Paragraph(
                'Prices shown use standard rates because current rates could not be loaded.',
                self.styles['ReportSmall']
            ))

        elements.append(Spacer(1, 12))
        elements.append(Paragraph('Washroom Quote Calculator', self.styles['ReportFooter']))

        return elements
