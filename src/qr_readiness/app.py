"""PyQt5 user interface for the QR scan readiness tool."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict

from PyQt5.QtCore import QTimer, Qt
from PyQt5.QtGui import QImage, QPixmap
from PyQt5.QtWidgets import (
    QApplication,
    QCheckBox,
    QComboBox,
    QDialog,
    QDoubleSpinBox,
    QFileDialog,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from .camera import OpenCVCameraProvider
from .config import ERROR_CORRECTION_LEVELS, TRANSPARENT, AppConfig, CameraConfig, ThemeConfig
from .decode import FrameDecodeAdapter, PyzbarFrameDecoder
from .errors import RendererUnavailable
from .overlay import draw_overlay
from .payload import CONTENT_TYPES, UTM_KEYS, build_payload, extract_utm_params, strip_utm_params
from .readiness import effective_error_correction, error_correction_hint
from .render import SegnoRenderer
from .scanner import ScanStatus, ScanUpdate, ScanVerificationController
from .state import AppState


def _to_pixmap(frame) -> QPixmap:  # pragma: no cover - requires Qt event loop
    import cv2  # type: ignore

    rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
    height, width, channel = rgb.shape
    image = QImage(rgb.data, width, height, channel * width, QImage.Format_RGB888)
    return QPixmap.fromImage(image.copy())


class QtFrameScheduler:  # pragma: no cover - requires Qt event loop
    """Run each frame callback on the next turn of the Qt event loop."""

    def __init__(self) -> None:
        self._timers: set[QTimer] = set()

    def schedule(self, callback: Callable[[], None]) -> QTimer:
        timer = QTimer()
        timer.setSingleShot(True)

        def fire() -> None:
            self._timers.discard(timer)
            callback()

        timer.timeout.connect(fire)
        self._timers.add(timer)
        timer.start(0)
        return timer

    def cancel(self, handle: Any) -> None:
        handle.stop()
        self._timers.discard(handle)


class ScanPreviewDialog(QDialog):  # pragma: no cover - requires Qt event loop
    """Camera view that confirms a printed code decodes to the expected data."""

    def __init__(self, expected_data: str, camera_config: CameraConfig, config: AppConfig, theme: ThemeConfig):
        super().__init__()
        self._expected = expected_data
        self._theme = theme
        self.setWindowTitle("Test scan")
        self.setMinimumSize(520, 520)

        self._display = QLabel("Camera preview will appear here")
        self._display.setObjectName("qrDisplayLabel")
        self._display.setAlignment(Qt.AlignCenter)
        self._display.setMinimumSize(480, 360)

        self._status = QLabel("")
        self._status.setAlignment(Qt.AlignCenter)
        self._status.setWordWrap(True)

        close_btn = QPushButton("Close")
        close_btn.clicked.connect(self.reject)

        layout = QVBoxLayout(self)
        layout.addWidget(self._display)
        layout.addWidget(self._status)
        layout.addWidget(close_btn)

        self._controller = ScanVerificationController(
            OpenCVCameraProvider(camera_config, config),
            FrameDecodeAdapter(PyzbarFrameDecoder()),
            QtFrameScheduler(),
            on_update=self._on_update,
        )

    def showEvent(self, event) -> None:  # type: ignore[override]
        super().showEvent(event)
        self._controller.open(self._expected)

    def hideEvent(self, event) -> None:  # type: ignore[override]
        self._controller.close()
        super().hideEvent(event)

    def done(self, result: int) -> None:  # type: ignore[override]
        self._controller.close()
        super().done(result)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._controller.close()
        super().closeEvent(event)

    def _on_update(self, update: ScanUpdate) -> None:
        if update.frame is not None:
            pixmap = _to_pixmap(draw_overlay(update.frame, update.overlay))
            target = self._display.size()
            if target.width() and target.height():
                pixmap = pixmap.scaled(target, Qt.KeepAspectRatio, Qt.SmoothTransformation)
            self._display.setPixmap(pixmap)

        colors = {
            ScanStatus.SUCCESS: self._theme.success,
            ScanStatus.ERROR: self._theme.warning,
            ScanStatus.NO_PERMISSION: self._theme.danger,
        }
        text = update.message
        if update.status is ScanStatus.ERROR and update.payload is not None:
            text = f"{text}\nScanned: {update.payload}"
            self._status.setToolTip(f"Expected: {self._expected.strip()} | Scanned: {update.payload}")
        self._status.setText(text)
        color = colors.get(update.status)
        self._status.setStyleSheet(f"color: {color}; font-weight: bold;" if color else "")


class MainWindow(QWidget):  # pragma: no cover - requires Qt event loop
    def __init__(
        self,
        config: AppConfig,
        state: AppState,
        theme: ThemeConfig,
        camera_config: CameraConfig,
    ):
        super().__init__()
        self._config = config
        self._state = state
        self._theme = theme
        self._camera_config = camera_config
        self._renderer = SegnoRenderer(config)
        self._decoder = FrameDecodeAdapter(PyzbarFrameDecoder())
        self._payload_error: str | None = None

        self._setup_ui()
        self._on_content_changed()

    def _setup_ui(self) -> None:
        layout = QHBoxLayout(self)

        form_panel = QWidget()
        form_layout = QVBoxLayout(form_panel)
        form_layout.addWidget(self._create_content_group())
        form_layout.addWidget(self._create_style_group())
        form_layout.addStretch()

        preview_panel = QWidget()
        preview_layout = QVBoxLayout(preview_panel)
        self._preview = QLabel()
        self._preview.setObjectName("qrDisplayLabel")
        self._preview.setAlignment(Qt.AlignCenter)
        self._preview.setMinimumSize(self._config.preview_size + 24, self._config.preview_size + 24)
        preview_layout.addWidget(self._preview)
        preview_layout.addWidget(self._create_readiness_group())
        preview_layout.addLayout(self._create_action_row())

        layout.addWidget(form_panel, 1)
        layout.addWidget(preview_panel, 1)

    def _create_content_group(self) -> QGroupBox:
        group = QGroupBox("Content")
        layout = QVBoxLayout()

        self._content_type = QComboBox()
        self._content_type.addItems(list(CONTENT_TYPES))
        self._content_type.setCurrentText(self._state.content_type)

        self._fields: Dict[str, Dict[str, QWidget]] = {}
        self._content_pages = QStackedWidget()
        for content_type in CONTENT_TYPES:
            self._content_pages.addWidget(self._create_content_page(content_type))
        self._content_pages.setCurrentIndex(CONTENT_TYPES.index(self._state.content_type))
        self._content_type.currentIndexChanged.connect(self._content_pages.setCurrentIndex)
        self._content_type.currentTextChanged.connect(self._on_content_changed)

        self._auto_utm = QCheckBox("Append UTM tags")
        self._auto_utm.setChecked(self._state.auto_utm)
        self._auto_utm.toggled.connect(self._on_content_changed)

        utm_form = QFormLayout()
        self._utm_inputs: Dict[str, QLineEdit] = {}
        for key in UTM_KEYS:
            line = QLineEdit(self._state.utm.get(key, ""))
            line.setPlaceholderText(f"utm_{key}")
            line.textChanged.connect(self._on_content_changed)
            self._utm_inputs[key] = line
            utm_form.addRow(key.capitalize(), line)
        self._utm_box = QWidget()
        self._utm_box.setLayout(utm_form)

        self._content_error = QLabel("")
        self._content_error.setObjectName("WarningText")

        type_row = QFormLayout()
        type_row.addRow("Type", self._content_type)
        layout.addLayout(type_row)
        layout.addWidget(self._content_pages)
        layout.addWidget(self._auto_utm)
        layout.addWidget(self._utm_box)
        layout.addWidget(self._content_error)
        group.setLayout(layout)
        return group

    def _create_content_page(self, content_type: str) -> QWidget:
        page = QWidget()
        form = QFormLayout(page)
        widgets: Dict[str, QWidget] = {}

        def line(name: str, label: str, text: str = "", secret: bool = False) -> None:
            widget = QLineEdit(text)
            if secret:
                widget.setEchoMode(QLineEdit.Password)
            widget.textChanged.connect(self._on_content_changed)
            widgets[name] = widget
            form.addRow(label, widget)

        if content_type == "url":
            line("url", "URL", self._state.style.data)
            widgets["url"].editingFinished.connect(self._absorb_utm_params)
        elif content_type == "text":
            line("text", "Text")
        elif content_type == "wifi":
            line("ssid", "Network name")
            line("password", "Password", secret=True)
            encryption = QComboBox()
            encryption.addItems(["WPA", "WEP", "nopass"])
            encryption.currentTextChanged.connect(self._on_content_changed)
            widgets["encryption"] = encryption
            form.addRow("Encryption", encryption)
            hidden = QCheckBox("Hidden network")
            hidden.toggled.connect(self._on_content_changed)
            widgets["hidden"] = hidden
            form.addRow(hidden)
        elif content_type == "email":
            line("address", "To")
            line("subject", "Subject")
            line("body", "Body")
        else:
            line("first_name", "First name")
            line("last_name", "Last name")
            line("org", "Organisation")
            line("phone", "Phone")
            line("email", "Email")

        self._fields[content_type] = widgets
        return page

    def _field_values(self, content_type: str) -> Dict[str, object]:
        values: Dict[str, object] = {}
        for name, widget in self._fields[content_type].items():
            if isinstance(widget, QCheckBox):
                values[name] = widget.isChecked()
            elif isinstance(widget, QComboBox):
                values[name] = widget.currentText()
            else:
                values[name] = widget.text()
        return values

    def _absorb_utm_params(self) -> None:
        url_input = self._fields["url"]["url"]
        found = extract_utm_params(url_input.text())
        if not found:
            return
        for key, value in found.items():
            self._utm_inputs[key].setText(value)
        self._auto_utm.setChecked(True)
        url_input.setText(strip_utm_params(url_input.text()))

    def _create_style_group(self) -> QGroupBox:
        group = QGroupBox("Style")
        form = QFormLayout()
        style = self._state.style

        self._fg_input = QLineEdit(style.fg_color)
        self._bg_input = QLineEdit("" if style.has_transparent_background else style.bg_color)
        self._transparent = QCheckBox("Transparent background")
        self._transparent.setChecked(style.has_transparent_background)

        self._ec_selector = QComboBox()
        self._ec_selector.addItems(ERROR_CORRECTION_LEVELS)
        self._ec_selector.setCurrentText(style.error_correction)
        self._auto_ec = QCheckBox("Auto-optimise error correction")
        self._auto_ec.setChecked(style.auto_error_correction)

        logo_row = QHBoxLayout()
        self._logo_label = QLabel("No logo")
        logo_btn = QPushButton("Choose logo…")
        logo_btn.clicked.connect(self._choose_logo)
        clear_btn = QPushButton("Remove")
        clear_btn.clicked.connect(self._clear_logo)
        logo_row.addWidget(self._logo_label)
        logo_row.addWidget(logo_btn)
        logo_row.addWidget(clear_btn)

        self._ec_hint = QLabel("")
        self._ec_hint.setWordWrap(True)
        self._ec_hint.setObjectName("WarningText")

        for widget in (self._fg_input, self._bg_input):
            widget.textChanged.connect(self._on_style_changed)
        self._transparent.toggled.connect(self._on_style_changed)
        self._ec_selector.currentTextChanged.connect(self._on_style_changed)
        self._auto_ec.toggled.connect(self._on_style_changed)

        form.addRow("Foreground", self._fg_input)
        form.addRow("Background", self._bg_input)
        form.addRow(self._transparent)
        form.addRow("Error correction", self._ec_selector)
        form.addRow(self._auto_ec)
        form.addRow("Logo", logo_row)
        form.addRow(self._ec_hint)
        group.setLayout(form)
        return group

    def _create_readiness_group(self) -> QGroupBox:
        group = QGroupBox("Scan Readiness")
        layout = QVBoxLayout()

        self._ready_badge = QLabel()
        self._contrast_label = QLabel()

        inputs = QFormLayout()
        self._distance_input = QDoubleSpinBox()
        self._distance_input.setRange(0, 1000)
        self._distance_input.setSingleStep(0.5)
        self._distance_input.setDecimals(2)
        self._distance_input.setValue(self._state.scan_distance_ft)
        self._distance_input.valueChanged.connect(self._on_size_changed)

        self._width_input = QDoubleSpinBox()
        self._width_input.setRange(0, 1000)
        self._width_input.setSingleStep(0.25)
        self._width_input.setDecimals(2)
        self._width_input.setValue(self._state.print_width_in)
        self._width_input.valueChanged.connect(self._on_size_changed)

        inputs.addRow("Scan distance (ft)", self._distance_input)
        inputs.addRow("Print width (in)", self._width_input)

        self._size_label = QLabel()
        self._warnings_label = QLabel()
        self._warnings_label.setWordWrap(True)
        self._warnings_label.setObjectName("WarningText")

        layout.addWidget(self._ready_badge)
        layout.addWidget(self._contrast_label)
        layout.addLayout(inputs)
        layout.addWidget(self._size_label)
        layout.addWidget(self._warnings_label)
        group.setLayout(layout)
        return group

    def _create_action_row(self) -> QHBoxLayout:
        row = QHBoxLayout()
        scan_btn = QPushButton("Test scan")
        scan_btn.setObjectName("AccentButton")
        scan_btn.clicked.connect(self._open_scanner)
        check_btn = QPushButton("Self-check")
        check_btn.clicked.connect(self._self_check)
        image_btn = QPushButton("Check image…")
        image_btn.clicked.connect(self._check_image)
        row.addWidget(scan_btn)
        row.addWidget(check_btn)
        row.addWidget(image_btn)
        for kind in ("svg", "png", "jpeg"):
            button = QPushButton(kind.upper())
            button.clicked.connect(lambda _checked=False, value=kind: self._export(value))
            row.addWidget(button)
        return row

    def _on_content_changed(self, *_args) -> None:
        content_type = self._content_type.currentText()
        self._state.content_type = content_type
        self._state.auto_utm = self._auto_utm.isChecked()
        for key, widget in self._utm_inputs.items():
            self._state.set_utm(key, widget.text())
        is_url = content_type == "url"
        self._auto_utm.setVisible(is_url)
        self._utm_box.setVisible(is_url and self._state.auto_utm)

        utm = self._state.utm if self._state.auto_utm else None
        payload, error = build_payload(content_type, self._field_values(content_type), utm)
        self._payload_error = error
        self._content_error.setText(error or "")
        if not error:
            self._state.style.data = payload
        self._refresh()

    def _on_style_changed(self, *_args) -> None:
        style = self._state.style
        style.fg_color = self._fg_input.text().strip()
        style.bg_color = TRANSPARENT if self._transparent.isChecked() else self._bg_input.text().strip()
        style.error_correction = self._ec_selector.currentText()
        style.auto_error_correction = self._auto_ec.isChecked()
        self._bg_input.setEnabled(not self._transparent.isChecked())
        self._ec_selector.setEnabled(not style.auto_error_correction)
        self._refresh()

    def _on_size_changed(self, *_args) -> None:
        self._state.set_scan_distance(self._distance_input.value())
        self._state.set_print_width(self._width_input.value())
        self._refresh()

    def _choose_logo(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Choose logo", "", "Images (*.png *.jpg *.jpeg)")
        if path:
            self._state.style.logo_path = path
            self._logo_label.setText(Path(path).name)
            self._refresh()

    def _clear_logo(self) -> None:
        self._state.style.logo_path = None
        self._logo_label.setText("No logo")
        self._refresh()

    def _refresh(self) -> None:
        style = self._state.style
        if style.auto_error_correction:
            self._ec_selector.setCurrentText(effective_error_correction(style))
        self._ec_hint.setText(error_correction_hint(style) or "")

        result = self._state.readiness(self._config)
        metrics = result.metrics
        if result.is_ready:
            self._ready_badge.setText("Ready")
            self._ready_badge.setObjectName("SuccessLabel")
        else:
            self._ready_badge.setText("Needs attention")
            self._ready_badge.setObjectName("WarningLabel")
        self._ready_badge.style().polish(self._ready_badge)

        if metrics.contrast_available:
            self._contrast_label.setText(
                f"Contrast: {metrics.contrast_percent}% diff · {metrics.contrast_ratio}:1 · {metrics.scannability}"
            )
        else:
            self._contrast_label.setText("Contrast: unavailable")
        self._size_label.setText(
            f"Max distance for current size: {metrics.max_distance_ft}ft\n"
            f"Min width for {self._state.scan_distance_ft:g}ft: {metrics.recommended_print_width_in}\"\n"
            f"Recommended export size: {metrics.recommended_pixel_size}px"
        )
        self._warnings_label.setText("\n".join(f"• {warning.message}" for warning in result.warnings))
        self._update_preview()

    def _update_preview(self) -> None:
        try:
            png = self._renderer.to_png_bytes(self._state.style, self._config.preview_size)
        except RendererUnavailable as exc:
            self._preview.setText(str(exc))
            return
        except (ValueError, OSError) as exc:
            self._preview.setText(f"Preview unavailable: {exc}")
            return

        image = QImage()
        if image.loadFromData(png):
            self._preview.setPixmap(QPixmap.fromImage(image))

    def _open_scanner(self) -> None:
        if self._payload_error:
            QMessageBox.warning(self, "Invalid content", self._payload_error)
            return
        dialog = ScanPreviewDialog(self._state.style.data, self._camera_config, self._config, self._theme)
        dialog.exec_()

    def _self_check(self) -> None:
        try:
            ok = self._renderer.self_check(self._state.style, self._decoder)
        except Exception as exc:
            QMessageBox.critical(self, "Error", f"Self-check failed: {exc}")
            return
        if ok:
            QMessageBox.information(self, "Self-check", "The rendered code decodes to the expected data.")
        else:
            QMessageBox.warning(self, "Self-check", "The rendered code could not be decoded back.")

    def _check_image(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Check image", "", "Images (*.png *.jpg *.jpeg *.bmp)")
        if not path:
            return
        result = self._decoder.read_from_file(path)
        expected = self._state.style.data.strip()
        if result is None:
            QMessageBox.warning(self, "Check image", "No QR code could be decoded from the image.")
        elif result.payload == expected:
            QMessageBox.information(self, "Check image", "The image decodes to the expected data.")
        else:
            QMessageBox.warning(self, "Check image", f"Data mismatch.\nScanned: {result.payload}")

    def _export(self, kind: str) -> None:
        directory = QFileDialog.getExistingDirectory(self, "Export to")
        if not directory:
            return
        try:
            size = self._state.readiness(self._config).metrics.recommended_pixel_size
            path = self._renderer.export(self._state.style, kind, directory=directory, size_px=size)
        except Exception as exc:
            QMessageBox.critical(self, "Error", f"Export failed: {exc}")
            return
        QMessageBox.information(self, "Exported", f"Saved {path}")


class ScanReadinessApp(QMainWindow):  # pragma: no cover - requires Qt event loop
    def __init__(self) -> None:
        super().__init__()

        self._config = AppConfig()
        self._camera_config = CameraConfig()
        self._theme = ThemeConfig()
        self._state = AppState.from_config(self._config)

        self.setWindowTitle(f"{self._config.app_name} v{self._config.app_version}")
        self.setGeometry(100, 100, 1000, 720)
        self._apply_stylesheet()

        self._main_window = MainWindow(self._config, self._state, self._theme, self._camera_config)
        self.setCentralWidget(self._main_window)
        self.show()

    def _apply_stylesheet(self) -> None:
        theme = self._theme
        self.setStyleSheet(
            f"""
            QMainWindow, QDialog {{ background: {theme.bg_primary}; }}
            QWidget {{ color: {theme.fg_primary}; font-family: {theme.font_family}; font-size: {theme.font_size}px; }}
            QGroupBox {{ font-weight: bold; border: 1px solid {theme.border}; border-radius: 8px; margin-top: 1ex; padding: 15px; background: {theme.bg_secondary}; }}
            QLineEdit, QDoubleSpinBox, QComboBox {{ background: {theme.bg_primary}; color: {theme.fg_secondary}; border: 1px solid {theme.border}; border-radius: 4px; padding: 6px; }}
            QPushButton {{ background: {theme.bg_tertiary}; color: {theme.fg_secondary}; border: none; padding: 10px 14px; border-radius: 4px; font-weight: bold; }}
            QPushButton#AccentButton {{ background: {theme.accent_primary}; }}
            QPushButton:hover {{ background: {theme.accent_secondary}; }}
            #WarningText {{ color: {theme.warning}; }}
            #WarningLabel {{ background: {theme.warning}; color: {theme.bg_primary}; padding: 6px; border-radius: 4px; }}
            #SuccessLabel {{ background: {theme.success}; color: {theme.bg_primary}; padding: 6px; border-radius: 4px; }}
            #qrDisplayLabel {{ border: 2px dashed {theme.border}; background: {theme.bg_primary}; border-radius: 4px; }}
            """
        )


def run() -> int:  # pragma: no cover - requires Qt event loop
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = QApplication.instance() or QApplication([])
    app.setApplicationName("QR Scan Readiness")
    window = ScanReadinessApp()
    return app.exec_()


__all__ = ["run", "ScanReadinessApp", "ScanPreviewDialog", "QtFrameScheduler"]
