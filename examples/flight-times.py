import pyarrow.compute as pc

from tidyground.compute import FunctionCallExpression, col
from tidyground.dataframe import Dataframe
from tidyground.datetimes import add, ddays, floor_date, make_datetime, wday, with_tz

flights = Dataframe.from_pydict({
  "carrier": ["UA", "AA", "UA", "B6"],
  "year": [2013, 2013, 2013, 2013],
  "month": [1, 1, 6, 12],
  "day": [1, 5, 15, 31],
  "dep_time": [517, 1958, 2359, 1230],
})

# 517 means 05:17, integer division truncates
hour = FunctionCallExpression(pc.divide, col("dep_time"), 100)
minute = FunctionCallExpression(pc.subtract, col("dep_time"), FunctionCallExpression(pc.multiply, hour, 100))

df = flights.mutate(
  departure=FunctionCallExpression(
    make_datetime, col("year"), col("month"), col("day"), hour, minute, tz="America/New_York"
  )
).select("carrier", "departure").collect()
print(df)

departures = df.to_arrow().column("departure").combine_chunks()
print(wday(departures, label=True))
print(floor_date(departures, "week").to_pylist())
print(with_tz(departures, "Europe/Rome").to_pylist())
print(add(departures, ddays(1) * 2).to_pylist())
