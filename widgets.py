from typing import List

from PyQt6.QtWidgets import (QSlider, QDialog, QVBoxLayout, QTextBrowser, QPushButton,
                             QStyle, QStyleOptionSlider)
from PyQt6.QtCore import Qt, QRect, QSize
from PyQt6.QtGui import QPainter, QColor

from models import EventKind, Mark, Region

REGION_COLORS = {
    "keep": QColor(0, 255, 0, 60),
    "fast_forward": QColor(255, 128, 0, 100),
    "mute": QColor(0, 0, 255, 160),
}

MARK_COLORS = {
    EventKind.CUT_IN: QColor(0, 160, 0),
    EventKind.CUT_OUT: QColor(200, 0, 0),
    EventKind.FAST_FORWARD_START: QColor(220, 200, 0),
    EventKind.FAST_FORWARD_STOP: QColor(0, 160, 0),
    EventKind.MUTE: QColor(0, 0, 220),
    EventKind.RESET: QColor(160, 160, 160),
}


class HelpDialog(QDialog):
    """Dialog listing the editing keys."""
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Help - Marking Keys")
        self.resize(520, 520)

        layout = QVBoxLayout(self)

        self.text_browser = QTextBrowser()
        self.text_browser.setHtml("""
            <h2>Marking a recording</h2>
            <p>Marks are placed at the playback position. Green spans are kept,
            orange spans are fast-forwarded, blue ticks are mutes.</p>

            <h3>Marks</h3>
            <ul>
                <li><b>F</b> / Pause: cut in, cut out, or resume from a fast-forward.</li>
                <li><b>S</b> / PrintScreen: start or stop a fast-forward; after a cut out, reset the running time.</li>
                <li><b>E</b> / ScrollLock: mute mark.</li>
                <li><b>D</b> / Delete: delete the mark before the playback position.</li>
                <li><b>V</b>: validate and clean up all marks.</li>
                <li><b>Ctrl+S</b>: save the marks.</li>
            </ul>

            <h3>Playback</h3>
            <ul>
                <li><b>Space</b> / <b>K</b>: play or pause.</li>
                <li><b>J</b> / <b>L</b> (or arrows): scrub 0.1s, with Shift 5s.</li>
                <li><b>H</b> / <b>;</b>: scrub 1s, with Shift 30s.</li>
                <li><b>I</b> / Up: previous mark. <b>,</b> / Down: next mark.</li>
                <li><b>0</b>-<b>9</b>: jump to that tenth of the recording.</li>
                <li><b>P</b>: jump to a numbered cut-in or resume.</li>
                <li><b>O</b> / <b>U</b>: faster or slower playback.</li>
                <li>PgUp / PgDown: zoom the timeline in or out.</li>
            </ul>
        """)
        layout.addWidget(self.text_browser)

        self.close_btn = QPushButton("Close")
        self.close_btn.clicked.connect(self.accept)
        layout.addWidget(self.close_btn)


class MarkTimelineSlider(QSlider):
    """Slider over the visible window of the timeline, drawing mark regions and a time scale.
    Values are milliseconds of the whole recording."""
    def __init__(self, orientation=Qt.Orientation.Horizontal, parent=None):
        super().__init__(orientation, parent)
        self.regions: List[Region] = []
        self.marks: List[Mark] = []

    def sizeHint(self):
        """Increase height to accommodate time labels."""
        s = super().sizeHint()
        return QSize(s.width(), s.height() + 30)

    def set_view(self, offset_s: float, length_s: float):
        self.setRange(int(offset_s * 1000), int((offset_s + length_s) * 1000))
        self.update()

    def set_regions(self, regions: List[Region]):
        self.regions = regions
        self.update()

    def set_marks(self, marks: List[Mark]):
        self.marks = marks
        self.update()

    def format_time_short(self, ms: int) -> str:
        """Format time as MM:SS or H:MM:SS."""
        seconds = ms // 1000
        minutes = seconds // 60
        hours = minutes // 60

        seconds %= 60
        minutes %= 60

        if hours == 0:
            return f"{minutes:02}:{seconds:02}"
        else:
            return f"{hours}:{minutes:02}:{seconds:02}"

    def paintEvent(self, event):
        painter = QPainter(self)
        opt = QStyleOptionSlider()
        self.initStyleOption(opt)

        # 1. Draw Groove (Background)
        opt.subControls = QStyle.SubControl.SC_SliderGroove
        self.style().drawComplexControl(QStyle.ComplexControl.CC_Slider, opt, painter, self)

        groove_rect = self.style().subControlRect(QStyle.ComplexControl.CC_Slider, opt, QStyle.SubControl.SC_SliderGroove, self)
        total_range = self.maximum() - self.minimum()

        def val_to_x(val):
            if total_range <= 0: return groove_rect.left()
            percent = (val - self.minimum()) / total_range
            return int(groove_rect.left() + percent * groove_rect.width())

        if total_range > 0:
            # 2. Regions, clipped to the visible range
            painter.setPen(Qt.PenStyle.NoPen)
            for region in self.regions:
                start_ms = max(int(region.start * 1000), self.minimum())
                end_ms = min(int(region.end * 1000), self.maximum())
                if end_ms < start_ms:
                    continue
                painter.setBrush(REGION_COLORS.get(region.kind, QColor(128, 128, 128, 80)))
                x1 = val_to_x(start_ms)
                w = max(1, val_to_x(end_ms) - x1)
                painter.drawRect(QRect(x1, groove_rect.top(), w, groove_rect.height()))

            # 3. Mark ticks
            for mark in self.marks:
                ms = int(mark.time * 1000)
                if ms < self.minimum() or ms > self.maximum():
                    continue
                painter.setPen(MARK_COLORS.get(mark.kind, QColor(128, 128, 128)))
                x = val_to_x(ms)
                painter.drawLine(x, groove_rect.top(), x, groove_rect.bottom())

            # 4. Time Scale (Ticks and Labels)
            min_pixel_spacing = 80
            widget_width = self.width()
            if widget_width > 0:
                min_ms_step = (total_range / widget_width) * min_pixel_spacing

                # Allowed steps: 1s, 5s, 10s, 30s, 1m, 5m, 10m, 30m, 1h
                allowed_steps = [
                    1000, 5000, 10000, 30000,
                    60000, 300000, 600000, 1800000,
                    3600000
                ]

                draw_step = allowed_steps[-1]
                for step in allowed_steps:
                    if step >= min_ms_step:
                        draw_step = step
                        break

                painter.setPen(Qt.GlobalColor.gray)
                font = painter.font()
                font.setPointSize(8)
                painter.setFont(font)

                start_t = (self.minimum() // draw_step) * draw_step
                if start_t < self.minimum():
                    start_t += draw_step

                for t in range(start_t, self.maximum() + 1, draw_step):
                    x = val_to_x(t)
                    tick_y = groove_rect.bottom() + 2
                    painter.drawLine(x, tick_y, x, tick_y + 5)
                    text_rect = QRect(x - 30, tick_y + 5, 60, 15)
                    painter.drawText(text_rect, Qt.AlignmentFlag.AlignCenter, self.format_time_short(t))

        # 5. Draw Handle
        opt.subControls = QStyle.SubControl.SC_SliderHandle
        self.style().drawComplexControl(QStyle.ComplexControl.CC_Slider, opt, painter, self)

        # 6. Draw Playhead
        handle_rect = self.style().subControlRect(QStyle.ComplexControl.CC_Slider, opt, QStyle.SubControl.SC_SliderHandle, self)
        painter.setPen(QColor(255, 255, 255))
        center_x = handle_rect.center().x()
        painter.drawLine(center_x, handle_rect.top(), center_x, handle_rect.bottom())
