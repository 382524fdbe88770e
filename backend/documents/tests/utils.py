import os
from io import BytesIO

import reportlab
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

# Bundled with ReportLab; stands in for the script fonts in tests
VERA_TTF = os.path.join(os.path.dirname(reportlab.__file__), 'fonts', 'Vera.ttf')


def make_pdf(pages=1, pagesize=letter):
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=pagesize)
    for number in range(1, pages + 1):
        c.drawString(72, 72, f'Page {number}')
        c.showPage()
    c.save()
    return buffer.getvalue()
