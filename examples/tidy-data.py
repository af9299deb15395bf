import pyarrow as pa
import pyarrow.compute as pc

from tidyground.compute import FunctionCallExpression, col
from tidyground.dataframe import Dataframe

table4a = Dataframe.from_pydict({
  "country": ["Afghanistan", "Brazil", "China"],
  "1999": [745, 37737, 212258],
  "2000": [2666, 80488, 213766],
})
table4b = Dataframe.from_pydict({
  "country": ["Afghanistan", "Brazil", "China"],
  "1999": [19987071, 172006362, 1272915272],
  "2000": [20595360, 174504898, 1280428583],
})

cases = table4a.pivot_longer(["1999", "2000"], names_to="year", values_to="cases")
population = table4b.pivot_longer(["1999", "2000"], names_to="year", values_to="population")

df = cases.left_join(population, on=["country", "year"]) \
  .mutate(rate=FunctionCallExpression(
    pc.multiply,
    FunctionCallExpression(pc.divide, FunctionCallExpression(pc.cast, col("cases"), pa.float64()), col("population")),
    10000,
  )) \
  .collect()

print(df)
print()
print(df.pivot_wider("year", "rate", id_cols=["country"]))
