"""Setup for wercker_gate"""
from setuptools import setup

setup(
    setup_requires=[u'pbr>=1.9', u'setuptools>=17.1'],
    python_requires=">=3.8",
    pbr=True,
)
