import pytest

from vxtools.sqltable import SQLTable, prepare


def test_where_with_subquery():
    ssql1 = prepare('select * from "B" $Where$').ors('"G1"=?', 1, '"G2"=?', 2)
    ssql = (
        prepare('select * from "A" $Where$')
        .and_('"B1"=?', 1)
        .and_('"B3"=?', 3)
        .where("and", "B4=?", ssql1)
    )
    assert ssql.args() == [1, 3, 1, 2]
    assert ssql.sql() == (
        'select * from "A" where "B1"=$1 and "B3"=$2 and '
        'B4=(select * from "B" where "G1"=$3 or "G2"=$4)'
    )


def test_values():
    ssql1 = prepare('select * from "B" $Where$').or_('"G1"=?', 1).or_('"G2"=?', 2)
    ssql = (
        prepare('insert into "B" $Values$ $Where$')
        .values("A1", 1, "A2", 1)
        .ands('"B3"=?', 3, '"B1"=?', 1)
        .where("and", "B4=?", ssql1)
    )
    assert ssql.args() == [3, 1, 1, 2, 1, 1]
    assert ssql.sql() == (
        'insert into "B" ("A1","A2") values($5,$6) where "B3"=$1 and "B1"=$2 and '
        'B4=(select * from "B" where "G1"=$3 or "G2"=$4)'
    )


def test_set():
    ssql1 = prepare('select * from "B" $Where$ limit ?').or_('"G1"=?', 6).or_('"G2"=?', 7)
    ssql1 = ssql1.ext_args(4)
    ssql = (
        prepare('update into "A" $Set$ $Where$ limit ?')
        .sets("A1", 2, "A2", 3)
        .and_('"B1"=?', 4)
        .and_('"B3"=?', 5)
        .where("and", "B4=?", ssql1)
    )
    assert ssql.args(1) == [1, 4, 5, 4, 6, 7, 2, 3]
    assert ssql.sql() == (
        'update into "A" set "A1"=$7,"A2"=$8 where "B1"=$2 and "B3"=$3 and '
        'B4=(select * from "B" where "G1"=$5 or "G2"=$6 limit $4) limit $1'
    )


def test_progress_nested():
    t1 = prepare("select id from t1 where a=? and b=?").ext_args(1)
    t1_1 = t1.ext_args(2)
    t1_2 = t1.ext_args(3)

    t2 = prepare("inster into t2 $Values$")
    t2.values("a", t1_1, "b", t1_2)
    assert t2.args() == [1, 2, 1, 3]
    assert t2.sql() == (
        "inster into t2 (a,b) values((select id from t1 where a=$1 and b=$2),"
        "(select id from t1 where a=$3 and b=$4))"
    )

    assert t1.args(4) == [1, 4]
    assert t1.sql() == "select id from t1 where a=$1 and b=$2"
    assert t1_1.args() == [1, 2]
    assert t1_1.sql() == "select id from t1 where a=$1 and b=$2"
    assert t1_2.args() == [1, 3]
    assert t1_2.sql() == "select id from t1 where a=$1 and b=$2"

    t3 = prepare("select * from t3 $Where$")
    t3.ands("a=?", t2, "b=?", 5)
    assert t3.args() == [1, 2, 1, 3, 5]
    assert t3.sql() == (
        "select * from t3 where a=(inster into t2 (a,b) values((select id from t1 "
        "where a=$1 and b=$2),(select id from t1 where a=$3 and b=$4))) and b=$5"
    )


def test_copy_is_independent():
    t1 = prepare("select id from t1 $Where$ limit ?")
    t1.and_("a=?", 2)
    assert t1.args(1) == [1, 2]

    t11 = t1.copy()
    t11.and_("b=?", 3)
    assert t11.args(4) == [4, 2, 3]

    assert t1.args() == [1, 2]
    assert t1.sql() == "select id from t1 where a=$2 limit $1"
    assert t11.sql() == "select id from t1 where a=$2 and b=$3 limit $1"


def test_prepare_numbered_references():
    t = prepare("select * from t where a=$2 and b=$1 and c=$1")
    assert t.args(10, 20) == [10, 20]
    assert t.sql() == "select * from t where a=$2 and b=$1 and c=$1"


def test_empty_where_is_removed():
    t = prepare("select * from t $Where$")
    assert t.sql() == "select * from t "
    assert t.args() == []


def test_optional_where_prefixes_symbol():
    t = prepare("select * from t where x=1 *Where*").and_("a=?", 1).or_("b=?", 2)
    assert t.sql() == "select * from t where x=1 and a=$1 or b=$2"
    assert t.args() == [1, 2]


def test_to_types_and_to_funcs():
    t = (
        prepare("insert into t $Values$")
        .to_types("Data", "jsonb")
        .to_funcs("geom", "ST_GeomFromText(?)")
        .values("Data", "{}", "geom", "POINT(1 2)")
    )
    assert t.sql() == 'insert into t ("Data",geom) values($1::jsonb,ST_GeomFromText($2))'
    assert t.args() == ["{}", "POINT(1 2)"]


def test_type_and_func_combined():
    t = prepare("update t $Set$").to_types("a", "int").to_funcs("a", "abs(?)").set("a", -3)
    assert t.sql() == "update t set a=abs($1::int)"


def test_to_types_rejects_non_string():
    with pytest.raises(TypeError):
        prepare("select 1").to_types(1, "int")
    with pytest.raises(TypeError):
        prepare("select 1").to_funcs("a", 2)


def test_excluded():
    t = (
        prepare('insert into "A"$Values$ on conflict("ID") do update set $Excluded$')
        .values("A1", 1, "b", 2)
        .excluded("A1", "b", "c")
    )
    assert t.sql() == (
        'insert into "A"("A1",b) values($1,$2) on conflict("ID") do update set '
        '"A1"=excluded."A1",b=excluded.b'
    )


def test_set_keys_and_serial():
    t = prepare("insert into t ($SetKeys$) values ($SetSerial$)").sets("a", 1, "b", 2)
    assert t.sql() == "insert into t (a,b) values ($1,$2)"
    assert t.args() == [1, 2]


def test_star_set():
    assert prepare("update t set *Set*").set("a", 5).sql() == "update t set a=$1"


def test_values_keys_and_serial_markers():
    t = prepare("insert into t ($ValuesKeys$) select $ValuesSerial$").values("a", 1, "b", 2)
    assert t.sql() == "insert into t (a,b) select $1,$2"


def test_value_replaces_existing_column():
    t = prepare("insert into t $Values$").value("a", 1).value("b", 2).value("a", 3)
    assert t.sql() == "insert into t (a,b) values($1,$2)"
    assert t.args() == [3, 2]
    assert t.value_values("x") == [3, 2, "x"]


def test_set_values_lists_queued_values():
    t = prepare("update t $Set$").sets("a", 1, "b", 2)
    assert t.set_values(9) == [1, 2, 9]


def test_odd_pairs_are_ignored():
    t = prepare("select * from t $Where$").ands("a=?")
    assert t.sql() == "select * from t "


def test_non_string_column_stops_pairs():
    t = prepare("insert into t $Values$").values("a", 1, 2, 3, "c", 4)
    assert t.sql() == "insert into t (a) values($1)"
    assert t.args() == [1]


def test_column_mark():
    t = prepare("insert into t $Values$").column_mark("`").values("Name", "x", "age", 3)
    assert t.sql() == "insert into t (`Name`,age) values($1,$2)"


def test_result_is_cached_after_first_assembly():
    t = prepare("select * from t where a=?")
    assert t.sql() == "select * from t where a=?"
    assert t.args(5) == []


def test_ext_args_returns_new_statement():
    base = prepare("select ? , ?")
    extended = base.ext_args(1)
    assert isinstance(extended, SQLTable)
    assert extended.args(2) == [1, 2]
    assert extended.sql() == "select $1 , $2"
    assert base.args(7, 8) == [7, 8]
    assert base.sql() == "select $1 , $2"