"""Tests for the cross-reference closure."""

import pytest

from binding_model import AmbiguousReferenceError, build_references

from helpers import (
    DOUBLE, GRAPHICS_H, INT, VOID,
    build, ctype, cursor, enum, field, function, param, ptr, record, struct, typedef,
)


def test_opaque_handle_closure():
    model = build(
        struct('CGContext'),
        typedef('CGContextRef', ptr(record('CGContext')),
                cursor('type_ref', 'struct CGContext', type=record('CGContext'))),
        function('CGContextFlush', VOID, param('c', ctype('typedef', 'CGContextRef'))),
    )
    graph = build_references(model)
    assert graph.names() == ['CGContext', 'CGContextRef']
    assert graph.get(model.find_typedef('CGContextRef')).referrers == {'CGContextFlush'}
    assert graph.get(model.find_struct('CGContext')).referrers == {'CGContextRef'}
    assert not graph.omitted


def test_struct_members_are_followed():
    point = struct('CGPoint', field('x', DOUBLE), field('y', DOUBLE))
    model = build(
        point,
        typedef('CGPoint', record('CGPoint'), point),
        struct('CGRect', field('origin', ctype('typedef', 'CGPoint')),
               field('corners', ctype('constant_array', 'CGPoint [4]',
                                      element_type=ctype('typedef', 'CGPoint'), array_size=4))),
        function('CGRectInset', record('CGRect'), param('rect', record('CGRect'))),
    )
    graph = build_references(model)
    assert graph.names() == ['CGPoint', 'CGRect']
    # Typedef of a struct stands in for the struct itself
    assert graph.is_referenced(model.find_typedef('CGPoint'))
    assert not graph.is_referenced(model.find_struct('CGPoint'))
    assert graph.get(model.find_typedef('CGPoint')).referrers == {'CGRect'}


def test_out_of_scope_entity_is_omitted(log_warnings):
    model = build(
        struct('CGSize', field('width', DOUBLE), file=GRAPHICS_H),
        function('NSSizeScale', VOID, param('size', record('CGSize'))),
    )
    graph = build_references(model)
    assert graph.names() == []
    assert [r.entity.name for r in graph.omitted] == ['CGSize']
    assert any('Omitting struct CGSize declared at' in m and 'Referenced by NSSizeScale' in m
               for m in log_warnings)


def test_values_are_roots():
    model = build(
        struct('NSRange', field('location', INT)),
        cursor('variable', 'NSEmptyRange', type=record('NSRange')),
    )
    graph = build_references(model)
    assert graph.get(model.find_struct('NSRange')).referrers == {'NSEmptyRange'}


def ambiguous_foo(conf=None):
    foo = struct('_Foo', field('a', INT))
    return build(
        foo,
        typedef('Foo', record('_Foo'), foo),
        function('FooCreate', VOID, param('foo', record('_Foo'))),
        function('FooRelease', VOID, param('foo', ctype('typedef', 'Foo'))),
        conf=conf,
    )


def test_ambiguous_names():
    with pytest.raises(AmbiguousReferenceError, match='Types Foo, _Foo refer to the same entity'):
        build_references(ambiguous_foo())


def test_ambiguity_resolved_by_renaming():
    model = ambiguous_foo({'classes': {'_Foo': {'name': 'Foo'}}})
    graph = build_references(model)
    assert graph.names() == ['Foo', '_Foo']


def test_unreferenced_enum(log_warnings):
    model = build(
        enum('FooMode', ('kFooModeA', 0), ('kFooModeB', 1)),
        enum('BarMode', ('kBarModeA', 0), ('kBarModeB', 1)),
        enum('BazMode', ('kBazModeA', 0), ('kBazModeB', 1)),
        function('BarSetMode', VOID, param('mode', ctype('enum', 'enum BarMode'))),
        conf={'enums': {'BazMode': {}}},
    )
    build_references(model)
    unreferenced = [m for m in log_warnings if 'is not referenced by any function or value' in m]
    assert len(unreferenced) == 1
    assert 'Enum FooMode at' in unreferenced[0]


def test_pointer_to_enum_counts_as_reference(log_warnings):
    model = build(
        enum('FooMode', ('kFooModeA', 0), ('kFooModeB', 1)),
        function('FooGetModes', VOID, param('modes', ptr(ctype('enum', 'enum FooMode')))),
    )
    build_references(model)
    assert not [m for m in log_warnings if 'is not referenced by any function or value' in m]
