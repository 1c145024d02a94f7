"""
Business rules package.

A business rule gates whether an item or an assignment applies to a
particular access check. Rules are stored as plain data (a list of
field/operator/value conditions) so they can live in the hierarchy file
and in the assignment table alike.

Modules of interest:
- models: Condition model, operators, and the stored-rule parser.
- engine: The evaluator injected into the access check.
"""
