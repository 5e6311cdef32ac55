# cabbagesql

The query core of a small SQL database. It provides typed values, expression
trees with SQL three-valued logic, table schemas with validation, a plan tree
with optimizer passes, and executors that run a plan against a transaction.

## Install

```
pip install cabbagesql
```

## Modules

- `cabbagesql.value`: `DataType` and `Value`. `Value.compare` orders values
  (NULL first, INT and FLOAT compared numerically), `decode_data_type` maps a
  Python object to a `DataType`, and `equal_value` compares two values by type
  and rendering.
- `cabbagesql.expressions`: expression nodes such as `Constant`, `Field`,
  `And`, `Or`, `Not`, `Equal`, `GreaterThan`, `LessThan`, `IsNull`, `Add`,
  `Subtract`, `Multiply`, `Divide`, `Modulo`, `Exponentiate`, `Factorial`,
  `Negate`, `Assert` and `Like`. Each has `evaluate(row)`, which returns a
  `Value`, or `None` when the expression cannot be evaluated.
- `cabbagesql.transform`: `walk`, `contains` and `transform` for expression
  trees.
- `cabbagesql.forms`: `into_nnf`, `into_cnf`, `into_cnf_list`, `into_dnf`,
  `into_dnf_list`, `from_cnf_list`, `from_dnf_list`, `as_lookup` and
  `from_lookup`.
- `cabbagesql.schema`: `Table`, `Column`, `ReferenceField`,
  `TableReferences`, `IndexValue` and `SchemaError`. It also defines the
  abstract `Catalog` and `Transaction` classes, which a storage engine
  implements.
- `cabbagesql.results`: the result sets (`QueryResultSet`,
  `CreateResultSet`, `UpdateResultSet`, `DeleteResultSet`,
  `CreateTableResultSet`, `DropTableResultSet`, `BeginResultSet`,
  `CommitResultSet`, `RollbackResultSet`, `ExplainResultSet`) and
  `result_set_prefix`.
- `cabbagesql.nodes`: the plan nodes, `Aggregate`, `JoinType`,
  `transform_node`, `transform_node_expressions`, and `format_node`, which
  renders a plan as indented text.
- `cabbagesql.sources`, `cabbagesql.query`, `cabbagesql.joins`,
  `cabbagesql.aggregation` and `cabbagesql.mutation`: the executors for scans,
  key and index lookups, filters, projections, limit, offset, ordering, nested
  loop and hash joins, aggregation, and insert, update and delete. They raise
  `ExecutionError` when a plan cannot run.
- `cabbagesql.build`: `build_executor` turns a plan node into an executor
  tree.
- `cabbagesql.plan`: `Plan` and its optimizer passes (`ConstantFolder`,
  `FilterPushdown`, `IndexLookupOptimizer`, `NoopCleaner`,
  `JoinTypeOptimizer`).

## Example

```python
from cabbagesql.value import DataType, Value
from cabbagesql.expressions import Constant, Field, GreaterThan

row = [Value(DataType.INT, 7), Value(DataType.STRING, "seven")]
predicate = GreaterThan(Field(0), Constant(Value(DataType.INT, 3)))
print(predicate.evaluate(row))  # TRUE
```

To run a plan, pass it an object that implements `Transaction`:

```python
from cabbagesql.plan import Plan

result = Plan(node).optimize(txn).execute(txn)
print(result.columns, result.rows)  # for a query plan
```

## What it does not do

The package has no SQL parser. Plans are built directly from the node
classes in `cabbagesql.nodes`. It has no storage engine, no session or
transaction manager, no server and no command-line program. Rows, indexes and
table schemas live wherever the `Transaction` implementation you supply keeps
them.

## Tests

```
pip install cabbagesql[test]
pytest
```