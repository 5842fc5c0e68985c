import os
from typing import List, Optional

from loguru import logger
from PyQt6.QtWidgets import (QMainWindow, QPushButton, QLabel, QVBoxLayout, QHBoxLayout,
                             QWidget, QMessageBox, QListWidget, QListWidgetItem, QLineEdit)
from PyQt6.QtGui import QFont
from PyQt6.QtMultimedia import QMediaPlayer, QAudioOutput
from PyQt6.QtMultimediaWidgets import QVideoWidget
from PyQt6.QtCore import Qt, QUrl, QTimer

from models import EditorConfig, Mark, Region
from timecode import pretty_time
from timeline_manager import TimelineManager
from widgets import MarkTimelineSlider, HelpDialog, MARK_COLORS

SCRUB_INTERVAL_MS = 100
SCRUB_KEYS = {key.value for key in (Qt.Key.Key_Left, Qt.Key.Key_J, Qt.Key.Key_Right, Qt.Key.Key_L,
                                    Qt.Key.Key_H, Qt.Key.Key_Semicolon, Qt.Key.Key_Colon)}


class MarkEditorWindow(QMainWindow):
    """Main window: plays the recording and edits its marks from the keyboard."""
    def __init__(self, media_path: str, marks_in: str, marks_out: Optional[str] = None,
                 config: Optional[EditorConfig] = None):
        super().__init__()
        self.setWindowTitle(f"Mark Editor - {os.path.basename(media_path)}")
        self.resize(1000, 700)

        self.media_path = media_path
        self.marks_out = marks_out or marks_in

        # Data
        self.manager = TimelineManager.from_file(marks_in, config)
        self.pos_item: Optional[QListWidgetItem] = None

        # Auto-scrubbing state
        self.scrub_by = 0.0
        self.scrub_resume = False
        self.scrub_timer = QTimer(self)
        self.scrub_timer.setInterval(SCRUB_INTERVAL_MS)
        self.scrub_timer.timeout.connect(self.scrub_step)

        # UI Setup
        self._init_ui()
        self._init_media_player()

        self.manager.register_change_callback(self.on_marks_changed)
        self.manager.refresh()

    def _init_ui(self):
        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QVBoxLayout(central_widget)
        main_layout.setSpacing(6)
        main_layout.setContentsMargins(10, 10, 10, 10)

        # --- Video and marks side by side ---
        top_layout = QHBoxLayout()

        self.video_widget = QVideoWidget()
        self.video_widget.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        top_layout.addWidget(self.video_widget, 3)

        self.marks_list = QListWidget()
        self.marks_list.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.marks_list.setFixedWidth(220)
        self.marks_list.itemClicked.connect(self.on_mark_clicked)
        top_layout.addWidget(self.marks_list)

        main_layout.addLayout(top_layout, 1)

        # --- Timeline row ---
        timeline_layout = QHBoxLayout()
        self.position_label = QLabel("0:00:00.00")
        timeline_layout.addWidget(self.position_label)

        self.slider = MarkTimelineSlider(Qt.Orientation.Horizontal)
        self.slider.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.slider.setRange(0, 0)
        self.slider.sliderMoved.connect(lambda ms: self.seek(ms / 1000.0))
        timeline_layout.addWidget(self.slider, 1)
        main_layout.addLayout(timeline_layout)

        # --- Status row ---
        status_layout = QHBoxLayout()
        self.kept_label = QLabel("Kept: 0:00:00.00 / 0:00:00.00")
        self.kept_label.setStyleSheet("font-weight: bold;")
        status_layout.addWidget(self.kept_label)

        self.speed_label = QLabel("1x")
        status_layout.addWidget(self.speed_label)
        status_layout.addStretch()

        self.jump_label = QLabel("Jump to (1-0):")
        self.jump_label.setVisible(False)
        status_layout.addWidget(self.jump_label)
        self.jump_box = QLineEdit()
        self.jump_box.setFixedWidth(60)
        self.jump_box.setVisible(False)
        self.jump_box.returnPressed.connect(self.on_jump)
        status_layout.addWidget(self.jump_box)

        self.help_btn = QPushButton("?")
        self.help_btn.setFixedWidth(30)
        self.help_btn.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.help_btn.clicked.connect(self.show_help)
        status_layout.addWidget(self.help_btn)
        main_layout.addLayout(status_layout)

        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    def _init_media_player(self):
        self.media_player = QMediaPlayer()
        self.audio_output = QAudioOutput()
        self.media_player.setAudioOutput(self.audio_output)
        self.media_player.setVideoOutput(self.video_widget)

        self.media_player.positionChanged.connect(self.position_changed)
        self.media_player.durationChanged.connect(self.duration_changed)
        self.media_player.mediaStatusChanged.connect(self.media_status_changed)
        self.media_player.setSource(QUrl.fromLocalFile(os.path.abspath(self.media_path)))

    # --- Collaborator callbacks ---

    def on_marks_changed(self, marks: List[Mark], regions: List[Region]):
        view = self.manager.view
        self.slider.set_view(view.offset or 0.0, view.length)
        self.slider.set_marks(marks)
        self.slider.set_regions(self.manager.visible_regions())
        self.rebuild_marks_list(marks)
        self.update_time_labels()

    def rebuild_marks_list(self, marks: List[Mark]):
        self.marks_list.clear()
        self.pos_item = None
        for mark in marks:
            if self.pos_item is None and mark.time > self.manager.position:
                self._add_position_item()
            item = QListWidgetItem(f"{mark.kind.value} {pretty_time(mark.time)}")
            item.setData(Qt.ItemDataRole.UserRole, mark.time)
            item.setForeground(MARK_COLORS.get(mark.kind, Qt.GlobalColor.gray))
            self.marks_list.addItem(item)
        if self.pos_item is None:
            self._add_position_item()
        self.marks_list.scrollToItem(self.pos_item, QListWidget.ScrollHint.PositionAtCenter)

    def _add_position_item(self):
        self.pos_item = QListWidgetItem(f"• {pretty_time(self.manager.position)}")
        font = QFont()
        font.setPointSize(14)
        font.setBold(True)
        self.pos_item.setFont(font)
        self.marks_list.addItem(self.pos_item)

    def update_time_labels(self):
        manager = self.manager
        self.position_label.setText(pretty_time(manager.position))
        self.kept_label.setText(f"Kept: {pretty_time(manager.elapsed_kept)} / {pretty_time(manager.total_kept)}")
        if self.pos_item is not None:
            self.pos_item.setText(f"• {pretty_time(manager.position)}")

    # --- Media surface ---

    def position_changed(self, position_ms):
        position = position_ms / 1000.0
        if not self.slider.isSliderDown():
            self.slider.setValue(position_ms)
        if not self.manager.set_position(position):
            self.update_time_labels()

    def duration_changed(self, duration_ms):
        self.manager.set_duration(duration_ms / 1000.0)

    def media_status_changed(self, status):
        if status == QMediaPlayer.MediaStatus.InvalidMedia:
            QMessageBox.critical(self, "Playback Error",
                                 f"Could not play media: {self.media_path}\n"
                                 "The file might be corrupted or the format is not supported.")

    def seek(self, seconds: float):
        seconds = max(0.0, seconds)
        if self.manager.duration > 0:
            seconds = min(seconds, self.manager.duration)
        self.media_player.setPosition(int(seconds * 1000))
        self.manager.position = seconds
        self.manager.refresh()

    def toggle_play(self):
        if self.media_player.playbackState() == QMediaPlayer.PlaybackState.PlayingState:
            self.media_player.pause()
        else:
            self.media_player.play()

    def change_speed(self, delta: float):
        rate = max(1.0, self.media_player.playbackRate() + delta)
        self.media_player.setPlaybackRate(rate)
        self.speed_label.setText(f"{rate:g}x")

    # --- Auto-scrubbing ---

    def start_scrub(self, by: float):
        if self.scrub_timer.isActive():
            return
        self.scrub_by = by
        self.scrub_resume = self.media_player.playbackState() == QMediaPlayer.PlaybackState.PlayingState
        self.media_player.pause()
        self.scrub_timer.start()
        self.scrub_step()

    def scrub_step(self):
        self.seek(self.manager.position + self.scrub_by)

    def stop_scrub(self):
        if not self.scrub_timer.isActive():
            return
        self.scrub_timer.stop()
        if self.scrub_resume:
            self.media_player.play()

    # --- Jumps ---

    def toggle_jump_box(self):
        visible = not self.jump_box.isVisible()
        self.jump_label.setText(f"Jump to (1-{len(self.manager.jump_index)}):")
        self.jump_label.setVisible(visible)
        self.jump_box.setVisible(visible)
        if visible:
            self.jump_box.setFocus()
            self.jump_box.selectAll()
        else:
            self.setFocus()

    def on_jump(self):
        text = self.jump_box.text().strip()
        target = self.manager.jump_target(int(text)) if text.isdigit() else None
        if target is not None:
            self.seek(target)
        if target is not None or text == "":
            self.jump_box.setVisible(False)
            self.jump_label.setVisible(False)
            self.setFocus()

    def on_mark_clicked(self, item: QListWidgetItem):
        t = item.data(Qt.ItemDataRole.UserRole)
        if t is not None:
            self.seek(float(t))

    # --- Saving ---

    def save_marks(self) -> bool:
        try:
            self.manager.save(self.marks_out)
        except OSError as e:
            logger.warning(f"Could not save marks to {self.marks_out}: {e}")
            QMessageBox.warning(self, "Save Error", f"Could not save marks to {self.marks_out}:\n{e}")
            return False
        self.statusBar().showMessage(f"Saved {self.marks_out}", 3000)
        return True

    def edited(self, changed: bool):
        """Writes the marks after every change so a crash loses nothing."""
        if not changed:
            return
        try:
            self.manager.checkpoint(self.marks_out)
        except OSError as e:
            logger.warning(f"Could not write marks to {self.marks_out}: {e}")
            self.statusBar().showMessage(f"Could not write {self.marks_out}: {e}", 5000)

    def show_help(self):
        dialog = HelpDialog(self)
        dialog.exec()

    # --- Keyboard ---

    def keyPressEvent(self, event):
        try:
            key = Qt.Key(event.key())
        except ValueError:
            super().keyPressEvent(event)
            return
        shift = bool(event.modifiers() & Qt.KeyboardModifier.ShiftModifier)
        ctrl = bool(event.modifiers() & Qt.KeyboardModifier.ControlModifier)
        manager = self.manager

        if ctrl and key == Qt.Key.Key_S:
            self.save_marks()
        elif ctrl and key == Qt.Key.Key_W:
            self.close()
        elif key in (Qt.Key.Key_Space, Qt.Key.Key_K):
            self.toggle_play()
        elif key in (Qt.Key.Key_Pause, Qt.Key.Key_F):
            self.edited(manager.cut())
        elif key in (Qt.Key.Key_ScrollLock, Qt.Key.Key_E):
            self.edited(manager.mute())
        elif key in (Qt.Key.Key_Print, Qt.Key.Key_S):
            self.edited(manager.fast_forward())
        elif key in (Qt.Key.Key_Delete, Qt.Key.Key_D):
            self.edited(manager.delete())
        elif key == Qt.Key.Key_V:
            self.edited(manager.validate() > 0)
        elif key in (Qt.Key.Key_Left, Qt.Key.Key_J):
            self.start_scrub(-5 if shift else -0.1)
        elif key in (Qt.Key.Key_Right, Qt.Key.Key_L):
            self.start_scrub(5 if shift else 0.1)
        elif key == Qt.Key.Key_H:
            self.start_scrub(-30 if shift else -1)
        elif key in (Qt.Key.Key_Semicolon, Qt.Key.Key_Colon):
            self.start_scrub(30 if shift or key == Qt.Key.Key_Colon else 1)
        elif key in (Qt.Key.Key_Up, Qt.Key.Key_I):
            self.seek(manager.previous_mark_target())
        elif key in (Qt.Key.Key_Down, Qt.Key.Key_Comma):
            self.seek(manager.next_mark_target())
        elif key == Qt.Key.Key_P:
            self.toggle_jump_box()
        elif Qt.Key.Key_0.value <= key.value <= Qt.Key.Key_9.value:
            self.seek(manager.fraction_target(key.value - Qt.Key.Key_0.value))
        elif key in (Qt.Key.Key_Plus, Qt.Key.Key_Equal, Qt.Key.Key_O):
            self.change_speed(1)
        elif key in (Qt.Key.Key_Minus, Qt.Key.Key_U):
            self.change_speed(-1)
        elif key == Qt.Key.Key_PageUp:
            manager.zoom_out()
        elif key == Qt.Key.Key_PageDown:
            manager.zoom_in()
        elif key in (Qt.Key.Key_Question, Qt.Key.Key_Slash):
            self.show_help()
        else:
            super().keyPressEvent(event)
            return
        event.accept()

    def keyReleaseEvent(self, event):
        if event.isAutoRepeat():
            return
        if event.key() in SCRUB_KEYS:
            self.stop_scrub()
            return
        super().keyReleaseEvent(event)

    def closeEvent(self, event):
        if self.save_marks():
            event.accept()
            return
        reply = QMessageBox.question(self, 'Exit',
                                     'The marks could not be saved. Quit anyway?',
                                     QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
                                     QMessageBox.StandardButton.No)
        if reply == QMessageBox.StandardButton.Yes:
            event.accept()
        else:
            event.ignore()
