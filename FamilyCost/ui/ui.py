"""Shared sizes, colours and theme for the FamilyCost widgets."""
import enum
import math

from PySide6 import QtGui, QtWidgets


class Size(enum.Enum):
    """Enumeration of size values used for UI scaling."""
    SmallText = 11.0
    MediumText = 12.0
    LargeText = 16.0
    Indicator = 4.0
    Separator = 1.0
    Margin = 18.0
    RowHeight = 34.0
    DefaultWidth = 960.0
    DefaultHeight = 720.0

    def __new__(cls, value):
        obj = object.__new__(cls)
        obj._value_ = float(value)
        return obj

    def __call__(self, multiplier=1.0):
        """
        Returns the scaled size value.

        Args:
            multiplier (float): A multiplier to apply to the size.

        Returns:
            int: The scaled size.
        """
        return round(self.size(self._value_) * float(multiplier))

    @classmethod
    def size(cls, value, ui_scale_factor=1.0, dpi=72.0):
        """Scale a value by DPI and UI scale factor."""
        return math.ceil(float(value) * (float(dpi) / 72.0)) * float(ui_scale_factor)


class Color(enum.Enum):
    """Enumeration of colours used across the UI."""
    Background = (245, 246, 250)
    DarkBackground = (226, 230, 240)
    Text = (30, 41, 59)
    SecondaryText = (100, 116, 139)
    DisabledText = (148, 163, 184)
    Blue = (67, 56, 202)
    Green = (5, 150, 105)
    Red = (225, 29, 72)
    Yellow = (234, 88, 12)

    def __call__(self, qss=False):
        """Return the colour as a QColor, or as an ``rgb()`` string if qss is True."""
        if qss:
            return self.rgb(self.value)
        return QtGui.QColor(*self.value)

    @staticmethod
    def rgb(color):
        return f'rgb({",".join(str(f) for f in color)})'


def amount_color(value: float) -> Color:
    """Green for non-negative amounts, red otherwise."""
    return Color.Green if value >= 0 else Color.Red


def apply_theme() -> None:
    """Apply the Fusion style with the application palette."""
    app = QtWidgets.QApplication.instance()
    if app is None:
        return

    app.setStyle('Fusion')
    palette = app.palette()
    palette.setColor(QtGui.QPalette.Window, Color.Background())
    palette.setColor(QtGui.QPalette.Base, QtGui.QColor(255, 255, 255))
    palette.setColor(QtGui.QPalette.AlternateBase, Color.DarkBackground())
    palette.setColor(QtGui.QPalette.Text, Color.Text())
    palette.setColor(QtGui.QPalette.WindowText, Color.Text())
    palette.setColor(QtGui.QPalette.ButtonText, Color.Text())
    palette.setColor(QtGui.QPalette.Highlight, Color.Blue())
    palette.setColor(QtGui.QPalette.PlaceholderText, Color.DisabledText())
    app.setPalette(palette)
