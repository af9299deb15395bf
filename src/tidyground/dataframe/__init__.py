"""Dataframe library built on top of tidyground.

A dataframe is a table of data organised in rows and columns,
where each column has a name and a type. Dataframes are the
most common way to work with data in an analysis: they allow
to load the data from various sources (like CSV files),
tidy it, combine it with other tables and summarise it.

The :class:`Dataframe` provided by this module exposes
each verb of the wrangling chapters as a method, so that
an analysis can be written as a chain of steps::

    (
        Dataframe.open_csv("table4a.csv")
        .pivot_longer(["1999", "2000"], names_to="year", values_to="cases")
        .left_join(population, on=["country", "year"])
        .arrange(["country", "year"])
    )

Each method only builds a new node of the query plan on top of
the previous one (see :mod:`tidyground.compute`), nothing is
computed until the data is requested through :meth:`Dataframe.collect`,
:meth:`Dataframe.to_arrow` or by printing the dataframe.
"""

from .dataframe import Dataframe

__all__ = ("Dataframe",)
