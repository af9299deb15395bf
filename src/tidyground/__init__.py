"""TidyGround

Data wrangling explained by building it, for learning and teaching purposes.

TidyGround follows the path of an analysis, from the moment the data is
imported, through tidying it and transforming it, to when the results
are communicated. Each step is a component, isolated within its own
package and each self documented in literate programming style.

The components are:

* The Compute Engine, whose verbs filter, reshape and join tables.
* The Dataframe API, which provides an high level API for the compute engine.
* Factors, to work with categorical variables.
* Dates and times, to parse them, take them apart and do arithmetic with them.
* Rendering, to produce documents that mix prose, code and results.

The data itself is stored and crunched by Apache Arrow, TidyGround
only shows how the verbs of data wrangling are put together on top of it.

For the user guide and code documentation of each component, refer to the
component itself.
"""

from . import compute

__all__ = ("compute",)
