import io
import logging
import os
from datetime import datetime

from PIL import Image, ImageDraw, ImageFont

from app.courses.database import Store
from app.courses.permissions import get_course_or_404, get_enrollment_or_404
from app.errors import PreconditionError

logger = logging.getLogger(__name__)

CERTIFICATE_PREFIX = "/certificates"

FONT_DIR = "/usr/share/fonts/truetype/dejavu"


def _load_fonts():
    try:
        return (
            ImageFont.truetype(os.path.join(FONT_DIR, "DejaVuSerif-Bold.ttf"), 80),
            ImageFont.truetype(os.path.join(FONT_DIR, "DejaVuSerif.ttf"), 40),
            ImageFont.truetype(os.path.join(FONT_DIR, "DejaVuSans.ttf"), 36),
            ImageFont.truetype(os.path.join(FONT_DIR, "DejaVuSans.ttf"), 28),
        )
    except OSError:
        default = ImageFont.load_default()
        return default, default, default, default


def render_certificate(student_name: str, course_title: str, instructor_name: str,
                       completion_date: datetime, certificate_id: str) -> bytes:
    """Draw the certificate and return it as PDF bytes"""
    width, height = 1920, 1080
    img = Image.new('RGB', (width, height), color='white')
    draw = ImageDraw.Draw(img)
    primary_color   = (41, 128, 185)
    secondary_color = (52, 73, 94)
    gold_color      = (241, 196, 15)
    draw.rectangle([50, 50, width-50, height-50], outline=primary_color, width=10)
    draw.rectangle([70, 70, width-70, height-70], outline=gold_color, width=3)
    title_font, subtitle_font, text_font, small_font = _load_fonts()

    def centered(text, font, y, fill):
        bbox = draw.textbbox((0, 0), text, font=font)
        draw.text(((width - (bbox[2]-bbox[0])) / 2, y), text, fill=fill, font=font)

    centered("CERTIFICATE OF COMPLETION", title_font, 120, primary_color)
    centered("This is to certify that", subtitle_font, 260, secondary_color)
    centered(student_name, title_font, 340, gold_color)
    centered("has successfully completed the course", text_font, 480, secondary_color)
    centered(course_title, title_font, 550, primary_color)
    if instructor_name:
        centered(f"Instructor: {instructor_name}", text_font, 680, secondary_color)
    centered(f"Completed on: {completion_date.strftime('%B %d, %Y')}", small_font, 780, secondary_color)
    centered(f"Certificate ID: {certificate_id}", small_font, 870, secondary_color)
    draw.line([(width//2-200, 950), (width//2+200, 950)], fill=secondary_color, width=2)
    centered("Authorized Signature", small_font, 960, secondary_color)

    buf = io.BytesIO()
    img.save(buf, format='PDF')
    return buf.getvalue()


class CertificateIssuer:
    """
    Issues one certificate per completed enrollment.

    The file name is derived from (student, course), so regenerating always
    yields the same locator. Once stored on the enrollment the locator is
    returned as-is.
    """

    def __init__(self, store: Store, certificate_dir: str):
        self.store = store
        self.certificate_dir = certificate_dir

    @staticmethod
    def certificate_locator(student_id: int, course_id: int) -> str:
        return f"{CERTIFICATE_PREFIX}/{student_id}-{course_id}.pdf"

    def certificate_path(self, student_id: int, course_id: int) -> str:
        return os.path.join(self.certificate_dir, f"{student_id}-{course_id}.pdf")

    async def generate_certificate(self, student_id: int, course_id: int) -> str:
        enrollment = await get_enrollment_or_404(self.store, student_id, course_id)

        if enrollment.get("certificate_url"):
            return enrollment["certificate_url"]

        if enrollment.get("completed_at") is None and enrollment.get("progress", 0) < 100:
            raise PreconditionError("Course not completed yet. Complete all lessons to get a certificate.")

        course = await get_course_or_404(self.store, course_id)
        student = await self.store.users.find_one({"user_id": student_id})
        instructor = await self.store.users.find_one({"user_id": course.get("instructor_id")})

        completed_at = enrollment.get("completed_at") or datetime.utcnow()
        pdf_bytes = render_certificate(
            student_name=student.get("name", "Student") if student else "Student",
            course_title=course.get("title", "Course"),
            instructor_name=instructor.get("name") if instructor else None,
            completion_date=completed_at,
            certificate_id=f"CERT-{student_id}-{course_id}"
        )

        os.makedirs(self.certificate_dir, exist_ok=True)
        with open(self.certificate_path(student_id, course_id), "wb") as f:
            f.write(pdf_bytes)

        locator = self.certificate_locator(student_id, course_id)
        result = await self.store.enrollments.update_one(
            {"enrollment_id": enrollment["enrollment_id"], "certificate_url": None},
            {"$set": {
                "certificate_url": locator,
                "certificate_issued_at": datetime.utcnow()
            }}
        )

        if result.modified_count:
            logger.info("Certificate issued for student %s, course %s", student_id, course_id)
        return locator
