"""Test package for FamilyCost.

Qt runs headless and writes its application data to the test locations, so the
settings and the cache of a real installation are never touched.
"""
import os

os.environ.setdefault('QT_QPA_PLATFORM', 'offscreen')

from PySide6 import QtCore  # noqa: E402

QtCore.QStandardPaths.setTestModeEnabled(True)
