"""Shell commands exposing TidyGround functionalities.

This module contains the shell commands that can be used to interact with TidyGround.

Knit
====

``tidyground-knit`` runs the code of a document and renders it
in one of the supported output formats::

    tidyground-knit report.pymd -f html_document -P year=2013

The parameters provided with ``-P`` override those declared in the
front matter of the document, their values are read as YAML so
``-P year=2013`` provides an integer and ``-P country=Italy`` a string.

The available output formats can be listed with::

    tidyground-knit --list-formats

"""
