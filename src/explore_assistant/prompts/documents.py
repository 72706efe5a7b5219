"""Static reference documentation embedded in the shared prompt context."""

FILTER_DOC = """\
## Filter expressions

Filters map a field id to a filter expression string. Separate alternatives
with a comma; a comma means logical OR (`FOO,BAR` matches FOO or BAR).

### String fields
| Expression | Meaning |
|---|---|
| `FOO` | is equal to FOO |
| `FOO,BAR` | is FOO or BAR |
| `%FOO%` | contains FOO |
| `FOO%` | starts with FOO |
| `%FOO` | ends with FOO |
| `F%OD` | starts with F and ends with OD |
| `-FOO` | is not FOO |
| `-%FOO%` | does not contain FOO |
| `EMPTY` | value is empty |
| `NULL` / `-NULL` | value is null / is not null |
| `FOO^, BAR` | a literal comma is escaped with `^` |

### Number fields
| Expression | Meaning |
|---|---|
| `5` | is exactly 5 |
| `NOT 5`, `<>5`, `!=5` | is anything but 5 |
| `1, 3, 5, 7` | is one of the listed values |
| `>1`, `>=1`, `<100`, `<=100` | comparisons |
| `5 to 10` | between 5 and 10 inclusive |
| `>=5 AND <=10` | between 5 and 10 inclusive |
| `[5, 90]`, `(5, 90)`, `(12, inf)` | interval notation |
| `NULL` / `NOT NULL` | value is null / is not null |

### Yes/no fields
Only `Yes` or `No`.

### Date and time fields
Use the interval and timeframe grammar below. Bare words such as `complete` or
`active` are never valid date filters.
"""

INTERVAL_TIMEFRAME_DOC = """\
## Intervals and timeframes

Units: second, minute, hour, day, week, month, quarter, year, fiscal quarter,
fiscal year (singular or plural).

| Expression | Meaning |
|---|---|
| `today`, `yesterday`, `tomorrow` | a single day relative to now |
| `this week`, `this month`, `this year` | the current (partial) period |
| `last month`, `next quarter` | the previous / following complete period |
| `7 days` | the last 7 days including today |
| `last 3 months` | the 3 complete months before this one |
| `3 complete weeks` | the 3 complete weeks before this one |
| `2 days ago` | a single day two days back |
| `3 months from now` | a single month three months ahead |
| `2 days ago for 2 days` | a period starting at a point, for a duration |
| `before 2024-01-01`, `after 2023-06` | open-ended ranges |
| `on or after 3 days ago` | inclusive open-ended range |
| `2024-01-01 to 2024-02-01` | start inclusive, end exclusive |
| `2024`, `2024-03`, `2024-03-15`, `2024/03/15 14:00` | absolute periods |
| `2024-Q1`, `FY2024` | quarters and fiscal years |
| `monday`, `last friday` | named weekdays |
| `NULL`, `NOT NULL` | null checks |

Timeframes are relative to the current date supplied with the request. Never
copy absolute dates from examples.
"""

VISUALIZATION_DOC = """\
## Visualizations

`vis_config.type` is required and MUST be one of the valid types below.

| Type | Use for |
|---|---|
| `looker_column` | vertical bars, comparing categories or time buckets |
| `looker_bar` | horizontal bars, long category labels, rankings |
| `looker_line` | trends over time |
| `looker_area` | cumulative or stacked trends over time |
| `looker_pie` | share of a whole with few categories |
| `looker_scatter` | correlation between two measures |
| `single_value` | one number (a total, a count, a KPI) |
| `looker_grid` | tables and anything else; use when unsure |

Common optional properties: `series_colors` (series name to hex color),
`colors` (list of hex colors), `show_value_labels`, `stacking`
(`normal`, `percent`), `legend_position`.
"""

PIVOTS_URL_PARAMETERS_DOC = """\
## Fields, pivots and sorts

- `fields` lists every dimension and measure in the result, in order.
- `pivots` spreads the values of a dimension across columns. Every pivoted
  field must also appear in `fields`. Pivot only on dimensions.
- `fill_fields` lists date dimensions whose missing periods should be filled.
- `sorts` entries are `"<field id> asc"` or `"<field id> desc"`; with pivots an
  optional trailing column index may follow (`"orders.count desc 0"`).
- `limit` is the maximum number of rows, as a string (default `"500"`).
- Use a measure when the question asks for top, bottom, total, sum, count or
  average.
"""

QUERY_OBJECT_FORMAT = """\
## Format of query object

| Field | Type | Description |
|---|---|---|
| fields | string[] | Dimensions and measures to select |
| filters | object | Field id to filter expression |
| sorts | string[] | Sort tokens |
| limit | string | Row limit |
| pivots | string[] | Pivoted dimensions |
| fill_fields | string[] | Date dimensions to fill |
| vis_config | object | Visualization config. MUST include 'type' |
"""
