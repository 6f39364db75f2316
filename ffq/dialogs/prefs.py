# ffq/dialogs/prefs.py
from PySide6.QtWidgets import (
    QCheckBox, QComboBox, QDialog, QDialogButtonBox, QFileDialog, QFormLayout,
    QHBoxLayout, QLabel, QLineEdit, QPushButton, QSpinBox, QVBoxLayout,
)

from ..utils.ffmpeg_locate import FFmpegNotFoundError, detect_ffmpeg

class PrefsDialog(QDialog):
    def __init__(self, settings: dict, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Preferences")
        self.settings = settings
        self.setMinimumWidth(640)

        self.out_edit = QLineEdit(self.settings["output_root"])
        btn_browse_out = QPushButton("Browse…"); btn_browse_out.clicked.connect(self._browse_out)
        self.ff_edit = QLineEdit(self.settings["ffmpeg_path"])
        btn_browse_ff = QPushButton("Browse…"); btn_browse_ff.clicked.connect(self._browse_ff)
        btn_detect = QPushButton("Detect"); btn_detect.clicked.connect(self._detect)
        self.ff_info = QLabel("")
        self.probe_edit = QLineEdit(self.settings.get("ffprobe_path", "ffprobe"))

        self.ext_combo = QComboBox(); self.ext_combo.setEditable(True)
        self.ext_combo.addItems([".mp4", ".mkv", ".mov", ".webm", ".mp3", ".m4a", ".flac", ".wav"])
        self.ext_combo.setCurrentText(self.settings.get("output_extension", ".mp4"))

        self.extra_args = QLineEdit(self.settings.get("extra_args", ""))
        self.extra_args.setPlaceholderText("e.g. -c:v libx264 -crf 23 -c:a aac")

        self.chk_overwrite = QCheckBox("Overwrite existing outputs (-y)")
        self.chk_overwrite.setChecked(self.settings.get("overwrite", True))
        self.chk_probe = QCheckBox("Probe duration with ffprobe before queueing (enables % / ETA)")
        self.chk_probe.setChecked(self.settings.get("probe_duration", True))

        self.chk_retry = QCheckBox("Automatically retry failed jobs")
        self.chk_retry.setChecked(self.settings.get("retry_on_fail", False))
        self.retry_spin = QSpinBox(); self.retry_spin.setRange(0, 20)
        self.retry_spin.setValue(int(self.settings.get("max_retries_per_job", 2)))
        self.retry_spin.setSuffix(" failed attempts per input/output")
        self.tail_spin = QSpinBox(); self.tail_spin.setRange(1, 500)
        self.tail_spin.setValue(int(self.settings.get("error_tail_lines", 20)))
        self.tail_spin.setSuffix(" lines")

        self.log_level = QComboBox(); self.log_level.addItems(["DEBUG", "INFO", "WARNING", "ERROR"])
        self.log_level.setCurrentText(self.settings.get("log_level", "INFO"))

        form = QFormLayout()
        row_out = QHBoxLayout(); row_out.addWidget(self.out_edit); row_out.addWidget(btn_browse_out)
        form.addRow("Output root:", row_out)
        row_ff = QHBoxLayout(); row_ff.addWidget(self.ff_edit); row_ff.addWidget(btn_browse_ff); row_ff.addWidget(btn_detect)
        form.addRow("ffmpeg path:", row_ff); form.addRow("", self.ff_info)
        form.addRow("ffprobe path:", self.probe_edit)
        form.addRow("Output extension:", self.ext_combo)
        form.addRow("Extra ffmpeg args:", self.extra_args)
        form.addRow("", self.chk_overwrite)
        form.addRow("", self.chk_probe)
        form.addRow("", self.chk_retry)
        form.addRow("Max failures:", self.retry_spin)
        form.addRow("Error text:", self.tail_spin)
        form.addRow("Log level:", self.log_level)

        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        buttons.accepted.connect(self.accept); buttons.rejected.connect(self.reject)

        layout = QVBoxLayout(self); layout.addLayout(form); layout.addWidget(buttons)

    def _browse_out(self):
        d = QFileDialog.getExistingDirectory(self, "Choose output root", self.out_edit.text())
        if d: self.out_edit.setText(d)

    def _browse_ff(self):
        f, _ = QFileDialog.getOpenFileName(self, "Locate ffmpeg", self.ff_edit.text() or "/usr/bin", "All (*)")
        if f: self.ff_edit.setText(f)

    def _detect(self):
        try:
            info = detect_ffmpeg(self.ff_edit.text().strip() or None)
        except FFmpegNotFoundError as e:
            self.ff_info.setText(str(e)); return
        self.ff_edit.setText(info.path)
        self.ff_info.setText(f"ffmpeg {info.version} (built {info.build_date})")

    def get_values(self) -> dict:
        ext = self.ext_combo.currentText().strip() or ".mp4"
        return {
            "output_root": self.out_edit.text().strip(),
            "ffmpeg_path": self.ff_edit.text().strip() or "ffmpeg",
            "ffprobe_path": self.probe_edit.text().strip() or "ffprobe",
            "output_extension": ext if ext.startswith(".") else "." + ext,
            "extra_args": self.extra_args.text().strip(),
            "overwrite": self.chk_overwrite.isChecked(),
            "probe_duration": self.chk_probe.isChecked(),
            "retry_on_fail": self.chk_retry.isChecked(),
            "max_retries_per_job": int(self.retry_spin.value()),
            "error_tail_lines": int(self.tail_spin.value()),
            "log_level": self.log_level.currentText(),
        }
