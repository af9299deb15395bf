# Configuration file for the Sphinx documentation builder.
#
# For the full list of built-in configuration values, see the documentation:
# https://www.sphinx-doc.org/en/master/usage/configuration.html

import pathlib
import sys

# Document the sources without requiring the package to be installed
sys.path.insert(0, str(pathlib.Path(__file__).parents[2] / "src"))

# -- Project information -----------------------------------------------------

project = 'TidyGround'
copyright = '2024, TidyGround contributors'
author = 'TidyGround contributors'

# -- General configuration ---------------------------------------------------

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.autosummary',
    'sphinx.ext.doctest',
    'sphinx.ext.intersphinx',
]

autosummary_generate = True
autodoc_member_order = 'bysource'
templates_path = ['_templates']
exclude_patterns = []

intersphinx_mapping = {
    'python': ('https://docs.python.org/3', None),
    'pyarrow': ('https://arrow.apache.org/docs', None),
    'jinja2': ('https://jinja.palletsprojects.com/en/stable', None),
}

# -- Options for HTML output -------------------------------------------------

html_theme = 'nature'
html_title = 'TidyGround: data wrangling explained by building it'
