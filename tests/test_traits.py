import enum
import json
from dataclasses import dataclass, field
from typing import Literal, Optional, Union

import pytest

from varstruct.exceptions import (
    VariantBadType,
    VariantEmpty,
    VariantError,
    VariantIntegralOverflow,
)
from varstruct.traits import (
    UpdateFromOpt,
    UpdateFromVar,
    Var,
    VarPolicy,
    from_variant,
    from_variant_impl,
    to_variant,
    to_variant_impl,
    update_opt_impl,
    update_var_impl,
)


# ----- structs used by the tests -------------------------------------------------


@dataclass
class Hobby(Var, UpdateFromVar):
    id: int = 0
    description: str = ""


@dataclass
class Person(Var, UpdateFromVar):
    name: str = ""
    age: int = 0
    hobby: Hobby = field(default_factory=Hobby)
    b: bool = False
    u: int = 0
    l: int = 0
    ul: int = 0
    f: float = 0.0
    v: list[int] = field(default_factory=list)
    n: Optional[bool] = None


@dataclass
class PersonOpt:
    x: Optional[str] = None
    y: Optional[int] = None


@dataclass
class MacroPerson(Var, UpdateFromVar, UpdateFromOpt):
    x: str = ""
    y: int = 0


@dataclass
class MacroPerson2(Var, UpdateFromVar, policy=VarPolicy):
    x: str = ""
    y: int = 0


class UserDefinedStr:
    def __init__(self, text=""):
        self.text = text

    def __eq__(self, other):
        return isinstance(other, UserDefinedStr) and self.text == other.text

    def to_variant(self):
        return self.text

    @classmethod
    def from_variant(cls, data):
        return cls(from_variant(str, data))


@dataclass
class ForeignHobby(Var):
    id: int = 0
    description: UserDefinedStr = field(default_factory=UserDefinedStr)


class E(enum.Enum):
    e1 = 1
    e2 = 2


class E2(enum.IntEnum):
    val1 = 0
    val2 = 1


@dataclass
class Blank:
    def to_variant(self):
        return None

    @classmethod
    def from_variant(cls, data):
        return cls()


@dataclass
class SimpleProperty(Var):
    x: int = 0


@dataclass
class SpecialSymbol1(Var):
    x: int = field(default=0, metadata={"name": "x~y~"})


@dataclass
class SpecialSymbol2(Var):
    x: int = 0

    @staticmethod
    def names():
        return {"x": "~x/y/~"}


@dataclass
class Defaulted(Var):
    x: int = field(default=0, metadata={"name": "y", "default": 1})


class SkipDefaultsPolicy(VarPolicy):
    serialize_default_value = False


@dataclass
class SkipDefaults(Var, policy=SkipDefaultsPolicy):
    x: int = field(default=0, metadata={"name": "y", "default": 1})


class LooseContainersPolicy(VarPolicy):
    empty_container_not_required = True


@dataclass
class Loose(Var, policy=LooseContainersPolicy):
    items: list[int] = field(default_factory=list)


@dataclass
class Strict(Var):
    items: list[int] = field(default_factory=list)


class ClosedPolicy(VarPolicy):
    allow_additional_properties = False


@dataclass
class Closed(Var, UpdateFromVar, policy=ClosedPolicy):
    x: int = 0


class TaggedPolicy(VarPolicy):
    tag = "person"


@dataclass
class Tagged(Var, policy=TaggedPolicy):
    x: int = 0


class DoublingPolicy(VarPolicy):
    @staticmethod
    def post_from_variant(obj, data):
        obj.y = obj.y * 2


@dataclass
class Doubled(Var, policy=DoublingPolicy):
    y: int = 0


PERSON_JSON = """
    {
        "name": "Efendi",
        "age": 20,
        "hobby": {
            "id": 10,
            "description": "Barista"
        },
        "b": true,
        "u": 4294967295,
        "l": 9223372036854775807,
        "ul": 18446744073709551615,
        "f": 1.1,
        "v": [1, 2]
    }
"""


# ----- struct conversion ---------------------------------------------------------


def test_simple_json_to_struct():
    data = json.loads(PERSON_JSON)
    expected = Person(
        "Efendi", 20, Hobby(10, "Barista"), True,
        4294967295, 9223372036854775807, 18446744073709551615, 1.1, [1, 2],
    )
    assert Person.from_variant(data) == expected
    assert to_variant(expected) == data


def test_nested_error_path():
    data = json.loads(PERSON_JSON)
    data["hobby"]["id"] = "ten"
    with pytest.raises(VariantBadType) as info:
        from_variant(Person, data)
    assert info.value.path == "/hobby/id"
    assert str(info.value) == "expected 'int32', actual 'string'"


def test_to_variant_macro():
    assert to_variant(MacroPerson("1", 1)) == {"x": "1", "y": 1}


def test_to_variant_with_explicit_policy():
    assert to_variant(MacroPerson2("1", 1)) == {"x": "1", "y": 1}


def test_from_variant_macro():
    actual = from_variant(MacroPerson, {"x": "1", "y": 1})
    assert actual.x == "1"
    assert actual.y == 1


def test_from_variant_with_explicit_policy():
    actual = from_variant(MacroPerson2, {"x": "1", "y": 1})
    assert (actual.x, actual.y) == ("1", 1)


def test_update_var():
    p = MacroPerson("1", 1)
    p.update_var({"x": "2", "y": 2})
    assert (p.x, p.y) == ("2", 2)
    assert to_variant(p) == {"x": "2", "y": 2}


def test_update_var_with_explicit_policy():
    p = MacroPerson2("1", 1)
    p.update_var({"x": "2", "y": 2})
    assert (p.x, p.y) == ("2", 2)
    assert to_variant(p) == {"x": "2", "y": 2}


def test_update_opt():
    p = MacroPerson("1", 1)
    p.update_opt(PersonOpt("2", 2))
    assert (p.x, p.y) == ("2", 2)
    assert to_variant(p) == {"x": "2", "y": 2}


def test_update_opt_skips_unset():
    p = MacroPerson("1", 1)
    update_opt_impl(p, PersonOpt(y=5))
    assert (p.x, p.y) == ("1", 5)


def test_update_opt_unknown_field():
    with pytest.raises(AttributeError):
        update_opt_impl(MacroPerson(), {"z": 1})


def test_update_var_nested_in_place():
    p = Person(hobby=Hobby(3, "Chess"))
    update_var_impl(p, {"hobby": {"description": "Tea"}, "age": 7})
    assert p.hobby == Hobby(3, "Tea")
    assert p.age == 7
    assert to_variant(p.hobby) == {"id": 3, "description": "Tea"}


def test_update_var_impl_ignores_unknown_by_default():
    p = MacroPerson("1", 1)
    update_var_impl(p, {"zzz": 3, "y": 4})
    assert (p.x, p.y) == ("1", 4)


def test_non_intrusive_conversion():
    data = {"id": 9, "description": "abc"}
    hobby = ForeignHobby(9, UserDefinedStr("abc"))
    assert from_variant(ForeignHobby, data) == hobby
    assert to_variant(hobby) == data


def test_required_field_missing():
    with pytest.raises(ValueError, match="'y' is required"):
        from_variant_impl(MacroPerson, {"x": "1"})


def test_struct_from_non_map():
    with pytest.raises(VariantBadType, match="expected 'map', actual 'int32'"):
        from_variant(MacroPerson, 5)


def test_defaults_and_names():
    assert Defaulted.from_variant({}) == Defaulted(1)
    assert Defaulted.from_variant({"y": 4}) == Defaulted(4)
    assert to_variant_impl(Defaulted(5)) == {"y": 5}


def test_skip_default_values():
    assert to_variant(SkipDefaults(1)) == {}
    assert to_variant(SkipDefaults(2)) == {"y": 2}


def test_empty_container_not_required():
    assert to_variant(Loose([])) == {}
    assert from_variant(Loose, {}) == Loose([])
    assert to_variant(Loose([1])) == {"items": [1]}


def test_container_required_by_default():
    with pytest.raises(ValueError, match="'items' is required"):
        from_variant(Strict, {})
    assert to_variant(Strict([])) == {"items": []}


def test_additional_properties_rejected():
    with pytest.raises(ValueError, match="'z' is unknown"):
        from_variant(Closed, {"x": 1, "z": 2})
    with pytest.raises(ValueError, match="'z' is unknown"):
        update_var_impl(Closed(1), {"z": 2}, ClosedPolicy)


def test_tag():
    assert to_variant(Tagged(3)) == {"x": 3, "__tag": "person"}
    assert from_variant(Tagged, {"x": 3, "__tag": "person"}) == Tagged(3)
    with pytest.raises(ValueError, match="'__tag' is required"):
        from_variant(Tagged, {"x": 3})
    with pytest.raises(VariantBadType) as info:
        from_variant(Tagged, {"x": 3, "__tag": "robot"})
    assert info.value.path == "/__tag"


def test_post_from_variant_hook():
    assert from_variant(Doubled, {"y": 4}) == Doubled(8)


# ----- generic conversion --------------------------------------------------------


def test_custom_static_conversion():
    assert from_variant(Blank, None) == Blank()
    assert to_variant(Blank()) is None


def test_variant_identity():
    assert to_variant(1) == 1
    assert to_variant({"a": [1, "b"]}) == {"a": [1, "b"]}


def test_enum_class():
    assert to_variant(E.e1) == "e1"
    assert from_variant(E, "e2") is E.e2


def test_int_enum():
    assert to_variant(E2.val1) == "val1"


def test_mapping():
    assert to_variant({"1": 1}) == {"1": 1}
    assert from_variant(dict[str, int], {"a": 1}) == {"a": 1}


def test_tuple_to_list():
    assert to_variant((1, "1", True)) == [1, "1", True]


def test_union():
    v = Union[int, str]
    assert to_variant("a") == "a"
    assert from_variant(v, 1) == 1
    assert from_variant(v, "a") == "a"
    with pytest.raises(VariantBadType):
        from_variant(v, 1.2)
    with pytest.raises(VariantBadType, match=r"^'1.5' is not of type 'one of \[int32, string\]'$"):
        from_variant(v, 1.5)


def test_list_element_error_path():
    with pytest.raises(VariantBadType) as info:
        from_variant(list[E], ["e1", "e3"])
    assert str(info.value) == "'e3' is not of type 'E'"
    assert info.value.path == "/1"


def test_set_element_error():
    with pytest.raises(VariantBadType, match="'e3' is not of type 'E'"):
        from_variant(set[E], ["e1", "e3"])
    assert from_variant(set[E], ["e1", "e2", "e1"]) == {E.e1, E.e2}


def test_map_element_error_path():
    with pytest.raises(VariantBadType) as info:
        from_variant(dict[str, E], {"a": "e1", "b": "e3"})
    assert str(info.value) == "'e3' is not of type 'E'"
    assert info.value.path == "/b"


def test_string_literal():
    assert from_variant(Literal["str"], "str") == "str"
    with pytest.raises(VariantBadType, match="'strr' is not of type 'str literal'"):
        from_variant(Literal["str"], "strr")


def test_integral_literal():
    assert from_variant(Literal[2], 2) == 2
    with pytest.raises(VariantBadType):
        from_variant(Literal[2], 1)


def test_fixed_tuple():
    tp = tuple[int, str]
    assert to_variant((1, "2")) == [1, "2"]
    assert from_variant(tp, [1, "2"]) == (1, "2")
    with pytest.raises(VariantBadType, match="expected size of the tuple is 2, actual 1"):
        from_variant(tp, [1])
    with pytest.raises(VariantBadType, match="expected 'int32', actual 'string'"):
        from_variant(tp, ["1", 2])


@pytest.mark.parametrize(
    "tp, value",
    [(type(None), None), (bool, True), (int, 0), (int, 18446744073709551615), (float, 1.5), (str, "s")],
)
def test_supported_scalars_round_trip(tp, value):
    assert to_variant(value) == value
    assert from_variant(tp, value) == value


def test_empty_value():
    with pytest.raises(VariantEmpty, match="expected 'int32', actual: 'Empty'"):
        from_variant(int, None)


def test_bool_is_not_int():
    with pytest.raises(VariantBadType, match="expected 'int32', actual 'boolean'"):
        from_variant(int, True)


def test_overflow():
    with pytest.raises(VariantIntegralOverflow):
        to_variant(2**64)


def test_unsupported_type():
    with pytest.raises(TypeError):
        to_variant(object())


@pytest.mark.parametrize(
    "cls, data, path",
    [
        (SimpleProperty, {"x": "1"}, "/x"),
        (SpecialSymbol1, {"x~y~": "1"}, "/x~0y~0"),
        (SpecialSymbol2, {"~x/y/~": "1"}, "/~0x~1y~1~0"),
    ],
)
def test_error_path(cls, data, path):
    with pytest.raises(VariantBadType) as info:
        from_variant(cls, data)
    assert info.value.path == path


def test_nested_required_becomes_variant_error():
    with pytest.raises(VariantError) as info:
        from_variant(Person, {**json.loads(PERSON_JSON), "hobby": {"id": 1}})
    assert info.value.path == "/hobby"
    assert str(info.value) == "'description' is required"