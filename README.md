# varstruct

varstruct moves dataclass structs in and out of plain "variant" data. Variant
data is built only from `None`, `bool`, `int`, `float`, `str`, lists, and
dictionaries with string keys. The package also parses nested URL query
strings. It has no dependencies outside the standard library.

## Modules

### `varstruct.traits`: conversion

- `to_variant(value)` converts a value to variant data:
  - Enums become their member names.
  - Mappings become dictionaries.
  - Lists, tuples and sets become lists. Sets are sorted when their items can be sorted.
  - An object with a `to_variant()` method converts itself.
  - Integers outside the 64-bit range raise `VariantIntegralOverflow`.
- `from_variant(tp, value)` converts variant data to the type `tp`. The type
  can be a scalar, an enum, `list[...]`, `set[...]`, `tuple[...]`,
  `dict[...]`, `Optional`/`Union`, `Literal`, `Any`, or a class with a
  `from_variant` method.
- `to_variant_impl(obj, policy)` converts a dataclass instance to a dictionary.
  `from_variant_impl(cls, data, policy)` builds a dataclass instance from a
  dictionary.
- `update_var_impl(obj, data, policy)` updates only the fields named in
  `data`. When a field's value has its own `update_var` method, that field is
  updated in place.
- `update_opt_impl(obj, opt)` copies fields from another dataclass or from a
  mapping. Entries that are `None` are skipped. For a dataclass, this applies
  only to fields whose type is optional.
- You can rename fields and give them defaults in two ways:
  - through field metadata, for example `field(metadata={"name": "y", "default": 1})`;
  - through class-level `names` / `defaults` mappings, or callables that return them.

  A missing field gets its default if it has one. A missing optional field gets
  `None`. Any other missing field raises `ValueError("'x' is required")`.
- `VarPolicy` holds the settings. Subclass it to change them:
  - `empty_container_not_required`
  - `serialize_default_value`
  - `allow_additional_properties`
  - `tag`: when set, the value is stored under the `"__tag"` key.
  - the hooks `rename`, `defaults` and `post_from_variant`.
- Mixins add methods to a dataclass:
  - `Var` adds `to_variant()` and `from_variant(data)`.
  - `UpdateFromVar` adds `update_var(data)`.
  - `UpdateFromOpt` adds `update_opt(opt)`.

  Pass a policy when subclassing, for example `class P(Var, policy=MyPolicy)`.

### `varstruct.exceptions`: errors

Conversion failures raise subclasses of `VariantError`:

- `VariantBadType`
- `VariantEmpty`
- `VariantIntegralOverflow`

Each error has a `path` attribute, a JSON-pointer path to the value that
failed, such as `/hobby/id`. The path is escaped: `~` becomes `~0` and `/`
becomes `~1`. `StringConversionError` reports a failed string conversion.

### `varstruct.type_names`: type names

`type_name(tp)` returns the readable names used in error messages, for example:

- `int32`, `double`, `string`, `boolean`
- `list of int32`
- `map of string-int32`
- `optional string`
- `one of [int32, string]`

An enum or dataclass is named after its class. A class can set its own name
with a `type_name` attribute.

### `varstruct.query_string`: query strings

`parse_query_string(text, settings)` turns a query string into nested
dictionaries and lists:

- `a[0]=x` indexes a list.
- `a[b]=x` sets a property.
- `a[]=x` appends to a list.
- Repeated keys collect their values into a list.
- `+` and `%XX` escapes are decoded.

`QueryStringParseSettings` sets the limits. The defaults are:

- `object_depth_limit=5`
- `object_property_count_limit=255`
- `array_length_limit=255`

Malformed input, mixed types and exceeded limits raise `QueryStringError`.
For syntax errors, `pretty_parse_error()` marks the failing position.

### `varstruct.comparison` and `varstruct.formatting`

- `struct_equal` and `struct_not_equal` compare two instances of the same
  dataclass field by field.
- The `EqualityComparison` mixin adds field-wise `==` and `!=` to a dataclass.
  Declare the dataclass with `eq=False`, or the generated `__eq__` replaces
  these methods.
- `format_struct(obj)` renders a struct as `Person { x: 1; y: 1; }`.
  `format_value` renders single values.
- `to_pretty_json(value)` dumps the variant form as JSON indented by four spaces.
- Mixins set `__str__`:
  - `OStream` renders the struct with `format_struct`.
  - `JsonOStream` renders it as pretty JSON.

## Example

```python
from dataclasses import dataclass

from varstruct.comparison import EqualityComparison
from varstruct.traits import UpdateFromVar, Var


@dataclass(eq=False)
class Hobby(Var, UpdateFromVar, EqualityComparison):
    id: int = 0
    description: str = ""


hobby = Hobby.from_variant({"id": 10, "description": "Barista"})
assert hobby.to_variant() == {"id": 10, "description": "Barista"}

hobby.update_var({"description": "Chef"})
assert hobby == Hobby(10, "Chef")
```

```python
from varstruct.query_string import QueryStringParseSettings, parse_query_string

data = parse_query_string("user[name]=ann&tags[]=a&tags[]=b", QueryStringParseSettings())
assert data == {"user": {"name": "ann"}, "tags": ["a", "b"]}
```

## What it does not do

varstruct works on data that has already been parsed. It does not read or
write JSON text, with one exception: `to_pretty_json` produces output. To get
variant data from a JSON document, load it with `json.loads` first. The package
has no command-line interface.

## Installing and testing

```
pip install .
pip install ".[test]"
pytest
```