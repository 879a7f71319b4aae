"""Tests for model construction and the post pass."""

import pytest

from binding_model import (
    ConstantValue,
    MergeTargetError,
    Pointer,
    Typedef,
    UnknownCursorError,
)

from helpers import (
    BOOL, DOUBLE, GRAPHICS_H, INT, VOID,
    build, ctype, cursor, enum, field, function, loc, method, param, ptr, record, struct, typedef,
)


def cg_point_and_opaque():
    point = struct('CGPoint', field('x', DOUBLE), field('y', DOUBLE))
    return [
        point,
        typedef('CGPoint', record('CGPoint'), point),
        typedef('CGOpaque', record('CGOpaque'),
                cursor('type_ref', 'struct CGOpaque', type=record('CGOpaque'))),
    ]


def test_struct_typedef_end_to_end():
    model = build(*cg_point_and_opaque())
    point = model.resolve(ctype('typedef', 'CGPoint'))
    assert isinstance(point, Typedef)
    assert point.struct is model.find_struct('CGPoint')
    assert [m.name for m in point.struct.members] == ['x', 'y']
    assert [model.resolve(m.type).name for m in point.struct.members] == ['double', 'double']
    assert model.to_target_type(point) == '@ByVal CGPoint'


def test_forward_typedef_is_opaque_handle():
    model = build(*cg_point_and_opaque())
    opaque = model.resolve(ctype('typedef', 'CGOpaque'))
    assert isinstance(opaque, Typedef)
    assert opaque.struct.is_opaque()
    assert opaque.struct.members == []

    handle = model.resolve(ptr(ctype('typedef', 'CGOpaque')))
    assert isinstance(handle, Pointer)
    assert handle.pointee is opaque
    assert handle.target_name == 'CGOpaque'


def test_same_location_is_same_entity():
    model = build(*cg_point_and_opaque())
    td = model.find_typedef('CGPoint')
    assert td.struct is model.structs[0]
    assert len([s for s in model.structs if s.name == 'CGPoint']) == 1


def test_full_definition_supersedes_forward_declaration():
    model = build(
        struct('CGRect'),
        struct('CGRect', field('origin', DOUBLE), field('size', DOUBLE)),
        struct('CGAffineTransform'),
    )
    assert [s.name for s in model.structs] == ['CGAffineTransform', 'CGRect']
    rect = model.find_struct('CGRect')
    assert not rect.is_opaque()
    assert model.find_struct('CGAffineTransform').is_opaque()


def test_nested_structs_are_registered():
    inner = cursor('struct', '', field('a', INT))
    named = cursor('union', 'Value', field('i', INT), field('d', DOUBLE))
    model = build(struct('Outer', inner, named, field('inner', ctype('record', 'struct (unnamed)'))))
    outer = model.find_struct('Outer')
    assert len(outer.children) == 2
    value = model.find_struct('Value')
    assert value.union
    assert value.parent is outer
    assert len(model.structs) == 3


def test_unknown_child_kind():
    with pytest.raises(UnknownCursorError, match='cxx_method'):
        build(struct('Foo', cursor('cxx_method', 'bar')))


def test_determinism():
    children = [
        *cg_point_and_opaque(),
        enum('FooEnum', ('kFooA', 0), ('kFooB', 1)),
        function('CFShow', VOID, param('obj', INT)),
        struct('AAA', field('a', INT)),
    ]
    first, second = build(*children), build(*children)
    for attr in ('structs', 'enums', 'typedefs', 'functions'):
        assert [e.name for e in getattr(first, attr)] == [e.name for e in getattr(second, attr)]


class TestEnums:
    def test_prefix_and_value_names(self):
        model = build(enum('CFFoo', ('kCFFooBar', 0), ('kCFFooBaz', 1)))
        e = model.find_enum('CFFoo')
        assert e.prefix == 'kCFFoo'
        assert [v.target_name for v in e.values] == ['Bar', 'Baz']

    def test_digit_guard(self):
        model = build(enum('Dim', ('kDim2D', 0), ('kDim3D', 1)))
        assert [v.target_name for v in model.find_enum('Dim').values] == ['_2D', '_3D']

    def test_configured_prefix_suffix_and_rename(self):
        model = build(enum('NSFoo', ('NSFooOneMask', 1), ('NSFooTwoMask', 2)),
                      conf={'enums': {'NSFoo': {'prefix': 'NSFoo', 'suffix': 'Mask',
                                                'NSFooTwoMask': 'NSFooSecondMask'}}})
        assert [v.target_name for v in model.find_enum('NSFoo').values] == ['One', 'Second']

    def test_single_value_prefix_warns(self, log_warnings):
        model = build(enum('Lonely', ('kLonelyValue', 0)))
        assert model.find_enum('Lonely').prefix == ''
        assert any('Failed to determine prefix for enum Lonely' in m for m in log_warnings)

    def test_name_from_first_value(self):
        model = build(enum('', ('NSCaseInsensitiveSearch', 1), ('NSLiteralSearch', 2)),
                      conf={'enums': {'NSStringCompareOptions': {'first': 'NSCaseInsensitiveSearch'}}})
        e = model.enums[0]
        assert e.name == 'NSStringCompareOptions'
        assert e.enum_conf == {'first': 'NSCaseInsensitiveSearch'}

    def test_name_from_cf_options_typedef(self):
        where = loc()
        e = enum('', ('kCFCompareLess', -1), ('kCFCompareEqual', 0), location=where)
        model = build(
            cursor('macro_expansion', 'CF_OPTIONS', location=where),
            e,
            typedef('CFComparisonResult', ctype('enum', 'enum CFComparisonResult'), location=where),
        )
        result = model.find_enum('CFComparisonResult')
        assert result is not None
        assert result.is_options() and result.is_bits()

    def test_name_from_wrapping_typedef(self):
        e = enum('', ('kFooA', 0), ('kFooB', 1))
        model = build(e, typedef('FooKind', ctype('enum', 'enum FooKind'), e))
        assert model.find_enum('FooKind') is model.enums[0]
        assert model.find_typedef('FooKind').enum is model.enums[0]

    def test_backing_type(self):
        model = build(enum('Small', ('kSmallA', 0), ('kSmallB', 1)),
                      enum('Wide', ('kWideA', 0), ('kWideB', 1), enum_type=ctype('ulong', 'unsigned long')),
                      conf={'enums': {'Small': {'type': 'short'}}})
        assert model.find_enum('Small').enum_type.name == 'short'
        assert model.find_enum('Wide').enum_type.name == 'MachineUInt'

    def test_merge(self):
        model = build(enum('NSFoo', ('NSFooA', 0), ('NSFooB', 1)),
                      enum('NSFooMore', ('NSFooC', 2), ('NSFooD', 3)),
                      conf={'enums': {'NSFooMore': {'merge_with': 'NSFoo'}}})
        assert [e.name for e in model.enums] == ['NSFoo']
        assert [v.name for v in model.enums[0].values] == ['NSFooA', 'NSFooB', 'NSFooC', 'NSFooD']
        # Merged values keep the prefix of their own enum
        assert model.enums[0].prefix == 'NSFoo'

    def test_merge_target_missing(self):
        with pytest.raises(MergeTargetError, match="NSBar"):
            build(enum('NSFooMore', ('NSFooC', 2), ('NSFooD', 3)),
                  conf={'enums': {'NSFooMore': {'merge_with': 'NSBar'}}})


class TestFunctions:
    def test_parameter_default_names(self):
        model = build(function('CGPointMake', ctype('typedef', 'CGPoint'), param('', DOUBLE), param('', DOUBLE)))
        assert [p.name for p in model.functions[0].parameters] == ['p0', 'p1']

    def test_excluded_functions(self, log_warnings):
        model = build(
            function('NSLog', VOID, param('format', INT), variadic=True),
            function('CGPointMake', VOID, param('x', DOUBLE), cursor('compound_stmt')),
            function('CFShow', VOID, param('obj', INT)),
            function('CFShow', VOID, param('obj', INT)),
            function('NSLogv', VOID, param('format', INT), param('args', ctype('typedef', 'va_list'))),
            function('CGColorCreate', VOID, file=GRAPHICS_H),
        )
        assert [f.name for f in model.functions] == ['CFShow']
        assert any("Ignoring variadic function 'void NSLog(int)'" in m for m in log_warnings)
        assert any("Ignoring inline function 'void CGPointMake(double)'" in m for m in log_warnings)
        assert any("Ignoring duplicate function 'void CFShow(int)'" in m for m in log_warnings)
        assert any("NSLogv" in m for m in log_warnings)
        assert not any('CGColorCreate' in m for m in log_warnings)


class TestObjC:
    def view(self, *extra):
        hidden = cursor('obj_c_property_decl', 'hidden', type=BOOL,
                        source='@property(nonatomic, getter=isHidden) BOOL hidden')
        frame = cursor('obj_c_property_decl', 'frame', type=record('CGRect'),
                       source='@property (readonly) CGRect frame')
        return cursor(
            'obj_c_interface_decl', 'NSView',
            cursor('obj_c_super_class_ref', 'NSResponder'),
            cursor('obj_c_protocol_ref', 'NSCoding'),
            hidden, frame,
            method('isHidden', BOOL),
            method('setHidden:', VOID, param('hidden', BOOL)),
            method('frame', record('CGRect')),
            method('display'),
            method('new', ctype('typedef', 'instancetype'), class_method=True),
            *extra,
        )

    def test_class_members(self):
        model = build(self.view())
        view = model.find_class('NSView')
        assert view.superclass == 'NSResponder'
        assert view.protocols == ['NSCoding']
        assert [m.name for m in view.class_methods] == ['new']
        assert [m.full_name for m in view.class_methods] == ['+new']

    def test_property_accessor_pairing(self):
        model = build(self.view())
        view = model.find_class('NSView')
        hidden, frame = view.properties
        assert hidden.getter.name == 'isHidden'
        assert hidden.setter.name == 'setHidden:'
        assert hidden.attrs == {'nonatomic': True, 'getter': 'isHidden'}
        assert frame.getter.name == 'frame'
        assert frame.is_readonly()
        assert frame.setter_name == 'setFrame:'
        assert [m.name for m in view.instance_methods] == ['display']

    def test_forward_class_declaration(self):
        model = build(
            cursor('obj_c_interface_decl', 'NSView', cursor('obj_c_class_ref', 'NSView')),
            self.view(),
        )
        assert len(model.objc_classes) == 1
        assert not model.objc_classes[0].is_opaque()

    def test_category(self):
        category = cursor('obj_c_category_decl', 'NSViewAdditions',
                          cursor('obj_c_class_ref', 'NSView'), method('layout'))
        model = build(category)
        assert model.objc_categories[0].owner == 'NSView'
        assert model.objc_categories[0].target_name == 'NSViewExtensions'
        assert not model.objc_protocols

    def test_category_as_protocol(self):
        category = cursor('obj_c_category_decl', 'NSKeyValueCoding',
                          cursor('obj_c_class_ref', 'NSObject'), method('valueForKey:', VOID, param('key', INT)))
        model = build(category, conf={'categories': {'NSKeyValueCoding': {'protocol': True}}})
        assert not model.objc_categories
        protocol = model.find_protocol('NSKeyValueCoding')
        assert protocol.is_informal()
        assert protocol.owner == 'NSObject'
        assert [m.name for m in protocol.instance_methods] == ['valueForKey:']

    def test_forward_protocol(self):
        model = build(cursor('obj_c_protocol_decl', 'NSCopying', cursor('obj_c_protocol_ref', 'NSCopying')))
        assert model.find_protocol('NSCopying').is_opaque()


class TestValues:
    def test_global_value_grouping(self):
        key = ptr(ctype('char_s', 'const char'))
        model = build(
            cursor('variable', 'NSFontAttributeName', type=key),
            cursor('variable', 'NSKernAttributeName', type=key),
            cursor('variable', 'kCFAllocatorDefault', type=key),
            cursor('variable', 'kCFAllocatorDefault', type=key),
            cursor('variable', 'kUTTypeImage', type=key),
            conf={'values': {
                'NS(.*)AttributeName': {'dictionary': 'NSAttributedStringAttributes', 'type': 'NSString'},
                'kUTType(.*)': {'enum': 'UTType'},
            }},
        )
        assert [v.name for v in model.global_values] == ['kCFAllocatorDefault']
        attributes = model.global_value_dictionaries['NSAttributedStringAttributes']
        assert [v.name for v in attributes.values] == ['NSFontAttributeName', 'NSKernAttributeName']
        assert attributes.extends == 'NSDictionaryWrapper'
        assert model.global_value_enums['UTType'].target_type == 'BytePtr'
        assert model.resolve_by_name('UTType') is model.global_value_enums['UTType']

    def test_const_value(self):
        model = build(cursor('variable', 'kFoo', type=ctype('int', 'const int')))
        assert model.global_values[0].is_const()

    @pytest.mark.parametrize('source,value,type_name', [
        ('kTen 10', '10', 'int'),
        ('kTenU 10UL', '10', 'int'),
        ('kBig 0xFFULL', '0xFFL', 'long'),
        ('kLong (long)5L', '5L', 'long'),
        ('kHalf (0.5f)', '0.5f', 'float'),
        ('kPi 3.14159', '3.14159', 'double'),
        ('kMask ~0x1', '~0x1', 'int'),
    ])
    def test_constant_macros(self, source, value, type_name):
        name = source.split()[0]
        model = build(cursor('macro_definition', name, source=source))
        constant = model.find_constant(name)
        assert isinstance(constant, ConstantValue)
        assert (constant.value, constant.type) == (value, type_name)

    def test_constant_alias_and_non_numeric(self):
        model = build(
            cursor('macro_definition', 'kBase', source='kBase 42'),
            cursor('macro_definition', 'kAlias', source='kAlias kBase'),
            cursor('macro_definition', 'kName', source='kName "name"'),
            cursor('macro_definition', 'kOther', source='kOther 1', file=GRAPHICS_H),
        )
        assert [(c.name, c.value) for c in model.constant_values] == [('kBase', '42'), ('kAlias', '42')]
