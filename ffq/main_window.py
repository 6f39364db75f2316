# ffq/main_window.py
import logging
import shlex
from pathlib import Path
from typing import Optional

from PySide6.QtCore import Qt, QThread, QUrl, Signal
from PySide6.QtGui import QAction, QDesktopServices, QGuiApplication
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QLabel, QHBoxLayout, QPushButton, QSplitter,
    QTextEdit, QTreeWidgetItem, QMenu, QFileDialog, QHeaderView, QDialog, QMessageBox
)

from .utils.settings import load_settings, save_settings
from .utils.paths import find_media_files, output_path_for, build_argv
from .utils.ffmpeg_locate import FFmpegNotFoundError, detect_ffmpeg
from .utils.log import QtLogBridge
from .models.job import FAILED, JobCompleteEvent, JobSpec, ProgressEvent, QueueState, RetryPolicy
from .workers.info_probe import InfoProbeWorker
from .workers.job_queue import JobQueue
from .workers.process_runner import FFmpegRunner
from .widgets.queue_tree import JobTree, COL_INPUT
from .widgets.details_panel import DetailsPanel
from .dialogs.prefs import PrefsDialog

log = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    probe_requested = Signal(str)

    def __init__(self, settings: dict | None = None):
        super().__init__()
        self.setWindowTitle("FFmpeg Queue")
        self.resize(1280, 820)
        self.settings = settings or load_settings()
        Path(self.settings["output_root"]).mkdir(parents=True, exist_ok=True)
        save_settings(self.settings)

        self.queue_label = QLabel("Queue: 0 jobs")
        self.queue_label.setStyleSheet("font-weight:600;")

        self.tree = JobTree()
        self.tree.setContextMenuPolicy(Qt.CustomContextMenu)
        self.tree.customContextMenuRequested.connect(self._row_menu)
        self.tree.currentItemChanged.connect(self._on_current_item_changed)
        self.tree.pathsDropped.connect(self._add_paths)

        hdr = self.tree.header()
        hdr.setStretchLastSection(False)
        hdr.setSectionResizeMode(COL_INPUT, QHeaderView.Stretch)
        for col in range(1, self.tree.columnCount()):
            hdr.setSectionResizeMode(col, QHeaderView.ResizeToContents)

        self.details = DetailsPanel()

        self.center_split = QSplitter(Qt.Horizontal)
        self.center_split.addWidget(self.tree)
        self.center_split.addWidget(self.details)
        self.center_split.setSizes([900, 380])

        self.console = QTextEdit(); self.console.setReadOnly(True)
        self.console.setPlaceholderText("Queue activity will appear here…")

        self.v_split = QSplitter(Qt.Vertical)
        self.v_split.addWidget(self.center_split)
        self.v_split.addWidget(self.console)
        self.v_split.setSizes([620, 220])

        self.btn_add_files = QPushButton("Add File(s)…"); self.btn_add_files.clicked.connect(self.add_files)
        self.btn_add_folder = QPushButton("Add Folder…"); self.btn_add_folder.clicked.connect(self.add_folder)
        self.btn_remove = QPushButton("Remove"); self.btn_remove.clicked.connect(self.remove_selected)
        self.btn_retry = QPushButton("Retry"); self.btn_retry.clicked.connect(self.retry_selected)
        self.btn_cancel = QPushButton("Cancel"); self.btn_cancel.clicked.connect(self.cancel_selected)
        self.btn_clear = QPushButton("Clear"); self.btn_clear.clicked.connect(self.clear_all)
        self.btn_start = QPushButton("Start Queue"); self.btn_start.clicked.connect(self.start_queue)
        self.btn_stop = QPushButton("Stop"); self.btn_stop.setEnabled(False); self.btn_stop.clicked.connect(self.stop_queue)

        top = QHBoxLayout()
        for b in (self.btn_add_files, self.btn_add_folder, self.btn_remove, self.btn_retry, self.btn_cancel,
                  self.btn_clear, self.btn_start, self.btn_stop): top.addWidget(b)
        top.addStretch()

        central = QWidget(); v = QVBoxLayout(central)
        v.addWidget(self.queue_label); v.addLayout(top); v.addWidget(self.v_split)
        self.setCentralWidget(central)

        m = self.menuBar().addMenu("&Options")
        act_prefs = QAction("Preferences…", self); act_prefs.triggered.connect(self.open_prefs); m.addAction(act_prefs)

        self.log_bridge = QtLogBridge()
        self.log_bridge.line.connect(self.console.append)
        logging.getLogger("ffq").addHandler(self.log_bridge)

        self.runner = FFmpegRunner(self.settings)
        self.queue = JobQueue(self.runner, error_tail_lines=int(self.settings.get("error_tail_lines", 20)))
        self.queue.state_changed.connect(self.on_state_changed)
        self.queue.progress.connect(self.on_progress)
        self.queue.job_complete.connect(self.on_job_complete)

        self._pending_outputs: set[str] = set()
        self.probe_worker = InfoProbeWorker(self.settings)
        self.probe_thread = QThread(self); self.probe_worker.moveToThread(self.probe_thread)
        self.probe_requested.connect(self.probe_worker.probe)
        self.probe_worker.probed.connect(self._on_probed)
        self.probe_thread.start()

        self._restore_layout()
        self._check_ffmpeg()
        self.on_state_changed(self.queue.get_state())

    def _check_ffmpeg(self):
        try:
            info = detect_ffmpeg(self.settings.get("ffmpeg_path"))
        except FFmpegNotFoundError as e:
            log.warning("%s", e)
            return
        if info.path != self.settings.get("ffmpeg_path"):
            self.settings["ffmpeg_path"] = info.path
            save_settings(self.settings)

    def _restore_layout(self):
        if cw := self.settings.get("col_widths"):
            if len(cw) == self.tree.columnCount():
                for i, w in enumerate(cw): self.tree.setColumnWidth(i, int(w))
        if cs := self.settings.get("center_split_sizes"): self.center_split.setSizes([int(x) for x in cs])
        if vs := self.settings.get("v_split_sizes"): self.v_split.setSizes([int(x) for x in vs])

    def _save_layout(self):
        self.settings["col_widths"] = [self.tree.columnWidth(i) for i in range(self.tree.columnCount())]
        self.settings["center_split_sizes"] = self.center_split.sizes()
        self.settings["v_split_sizes"] = self.v_split.sizes()
        save_settings(self.settings)

    def closeEvent(self, e):
        self.queue.shutdown(3000)
        if self.probe_thread.isRunning(): self.probe_thread.quit(); self.probe_thread.wait(3000)
        logging.getLogger("ffq").removeHandler(self.log_bridge)
        self._save_layout()
        super().closeEvent(e)

    def _row_menu(self, pos):
        if not (item := self.tree.itemAt(pos)): return
        if not (job := self.queue.get_job(item.data(0, Qt.UserRole))): return

        menu = QMenu(self)
        def _open(p: Optional[Path]):
            if p and Path(p).exists(): QDesktopServices.openUrl(QUrl.fromLocalFile(str(p)))

        act_open_out = QAction("Open Output Folder", self); act_open_out.triggered.connect(lambda: _open(Path(job.output_path).parent)); menu.addAction(act_open_out)
        act_copy_cmd = QAction("Copy ffmpeg Command", self)
        act_copy_cmd.triggered.connect(lambda: QGuiApplication.clipboard().setText(self._cmdline(job.argv)))
        menu.addAction(act_copy_cmd)
        if job.error_message:
            act_copy_err = QAction("Copy Error", self); act_copy_err.triggered.connect(lambda: QGuiApplication.clipboard().setText(job.error_message)); menu.addAction(act_copy_err)
        menu.addSeparator()
        act_retry = QAction("Retry", self); act_retry.setEnabled(job.status == FAILED); act_retry.triggered.connect(lambda: self.queue.retry_job(job.id)); menu.addAction(act_retry)
        act_cancel = QAction("Cancel", self); act_cancel.setEnabled(job.status in ("queued", "running")); act_cancel.triggered.connect(lambda: self.queue.cancel_job(job.id)); menu.addAction(act_cancel)
        act_remove = QAction("Remove", self); act_remove.triggered.connect(lambda: self.queue.remove_job(job.id)); menu.addAction(act_remove)

        menu.exec(self.tree.viewport().mapToGlobal(pos))

    def _cmdline(self, argv) -> str:
        return " ".join(shlex.quote(c) for c in (self.runner.binary, *argv))

    def add_files(self):
        files, _ = QFileDialog.getOpenFileNames(self, "Select media files", str(Path.home()), "Media (*.mp4 *.mkv *.mov *.avi *.webm *.mp3 *.wav *.flac *.m4a);;All files (*)")
        if files: self._add_paths(files)

    def add_folder(self):
        d = QFileDialog.getExistingDirectory(self, "Choose media folder", str(Path.home()))
        if d: self._add_paths([d])

    def _add_paths(self, paths):
        for p_str in paths:
            if not (pth := Path(p_str)).exists():
                continue
            media = find_media_files(pth)
            if not media:
                self.console.append(f"No media files in {pth}")
            for f in media:
                if self.settings.get("probe_duration", True):
                    self.console.append(f"Probing {f.name}…")
                    self.probe_requested.emit(str(f))
                else:
                    self._enqueue(f, None)

    def _on_probed(self, path: str, duration, err: str):
        if err:
            self.console.append(f"Probe error for {Path(path).name}: {err} (progress % unavailable)")
        self._enqueue(Path(path), duration)

    def _enqueue(self, input_path: Path, duration: float | None):
        out = output_path_for(input_path, self.settings, self._pending_outputs)
        self._pending_outputs.add(str(out))
        self.queue.add_job(JobSpec(
            input_path=str(input_path),
            output_path=str(out),
            argv=tuple(build_argv(input_path, out, self.settings)),
            expected_duration_seconds=duration,
        ))

    def _on_current_item_changed(self, cur: Optional[QTreeWidgetItem], prev: Optional[QTreeWidgetItem]):
        self._show_details_for_selection(cur)

    def _show_details_for_selection(self, item: Optional[QTreeWidgetItem]):
        if not item: self.details.clear(); return
        if not (job := self.queue.get_job(item.data(0, Qt.UserRole))): self.details.clear(); return
        self.details.show_job(job, self.runner.binary)

    def _selected(self) -> str | None:
        return self.tree.selected_job_id()

    def remove_selected(self):
        if (job_id := self._selected()) and self.queue.remove_job(job_id):
            self.details.clear()

    def retry_selected(self):
        if (job_id := self._selected()) and not self.queue.retry_job(job_id):
            self.console.append("Only failed jobs can be retried.")

    def cancel_selected(self):
        if (job_id := self._selected()) and not self.queue.cancel_job(job_id):
            self.console.append("Only queued or running jobs can be canceled.")

    def clear_all(self):
        if self.queue.get_stats()["total"] and QMessageBox.question(
                self, "Clear queue", "Remove all jobs from the queue?") != QMessageBox.Yes:
            return
        self.queue.clear_queue(); self.console.clear(); self.details.clear()
        self._pending_outputs.clear()

    def start_queue(self):
        if not self.queue.get_stats()["queued"]:
            self.console.append("=== No queued jobs to run ===")
            return
        self.queue.start(RetryPolicy.from_settings(self.settings))

    def stop_queue(self):
        if self.queue.is_running:
            self.console.append(">>> Stop requested, terminating current job…")
            self.queue.stop()

    def _refresh_queue_label(self, state: QueueState):
        stats = self.queue.get_stats()
        text = (f"Queue: {stats['completed']}/{stats['total']} done • {stats['queued']} left"
                f" • {stats['failed']} failed")
        if state.active_job_id and (job := state.job(state.active_job_id)):
            text += f" • Working on: {Path(job.input_path).name}"
        self.queue_label.setText(text)

    def on_state_changed(self, state: QueueState):
        self.tree.apply_state(state)
        self.btn_start.setEnabled(not state.is_running); self.btn_stop.setEnabled(state.is_running)
        self._refresh_queue_label(state)
        if (job_id := self._selected()) and (job := state.job(job_id)):
            self.details.show_job(job, self.runner.binary)

    def on_progress(self, event: ProgressEvent):
        self.tree.update_progress(event.job_id, event.percent, event.speed, event.eta_seconds)

    def on_job_complete(self, event: JobCompleteEvent):
        job = self.queue.get_job(event.job_id)
        name = Path(job.input_path).name if job else event.job_id
        if event.success:
            self.console.append(f"✔ {name} converted successfully")
        else:
            last = (event.error or "Unknown error").splitlines()[-1]
            self.console.append(f"✘ {name} conversion failed: {last}")

    def open_prefs(self):
        dlg = PrefsDialog(self.settings, self)
        if dlg.exec() == QDialog.Accepted:
            self.settings.update(dlg.get_values())
            save_settings(self.settings)
            self.queue.error_tail_lines = int(self.settings["error_tail_lines"])
            logging.getLogger("ffq").setLevel(self.settings.get("log_level", "INFO"))
            self.console.append("Saved preferences.")
