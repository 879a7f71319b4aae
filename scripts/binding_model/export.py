"""
Unit export

Turns a processed model into plain, JSON serializable collections for the
template merge step. Every entry carries its resolved target type and the
name and visibility resolved from the override configuration.
"""

from typing import Optional, TYPE_CHECKING
import re

from loguru import logger

from .entities import (
    Entity,
    ObjCCategory,
    ObjCClass,
    ObjCClassMethod,
    ObjCMemberHost,
    ObjCMethod,
    ObjCProperty,
)
from .naming import getter_for_name, setter_for_name

if TYPE_CHECKING:
    from .model import Model


def _is_exported(model: 'Model', entity: Entity) -> bool:
    conf = model.conf
    return entity.is_available(conf.mac_version, conf.ios_version) and not entity.is_outdated()


def _availability(entity: Entity) -> dict:
    return {'since': entity.since, 'deprecated': entity.deprecated}


def _default_class(model: 'Model') -> str:
    return model.conf.default_class or 'Functions'


def export_enums(model: 'Model', unit: dict):
    for enum in model.enums:
        c = model.conf.enum_conf(enum.name)
        if c is None and enum.values:
            c = model.conf.enum_conf_for_first_value(enum.values[0].name)
        if c is not None and not c.get('exclude') and not enum.is_outdated():
            unit['enums'].append({
                'name': enum.target_name,
                'native_name': enum.name,
                'bits': enum.is_bits(),
                'type': model.to_target_type(enum.enum_type),
                'visibility': c.get('visibility', 'public'),
                'values': [
                    {'name': v.target_name, 'native_name': v.name, 'value': v.value, **_availability(v)}
                    for v in enum.values
                    if _is_exported(model, v) and not (c.get('ignore') and re.match(c['ignore'], v.name))
                ],
                **_availability(enum),
            })
        elif model.is_included(enum) and (c is None or not c.get('exclude')):
            values = [v for v in enum.values if model.conf.constant_conf(v.name) is not None]
            first = enum.values[0].name if enum.values else ''
            logger.warning(f'Turning the enum {enum.name} with first value {first} at {enum.location} '
                           f'into constants')
            for v in values:
                vconf = model.conf.constant_conf(v.name)
                owner = vconf.get('class') or _default_class(model)
                unit['constants'].setdefault(owner, []).append({
                    'name': vconf.get('name') or v.name,
                    'native_name': v.name,
                    'value': str(v.value),
                    'type': vconf.get('type') or model.to_target_type(enum.enum_type),
                    'visibility': vconf.get('visibility', 'public'),
                })


def export_structs(model: 'Model', unit: dict):
    for struct in model.structs:
        if not struct.name or struct.is_opaque():
            continue
        c = model.conf.class_conf(struct.name)
        if c is None or c.get('exclude') or struct.is_outdated():
            continue
        unit['structs'].append(_struct_entry(model, struct, struct.name, c))

    for td in model.typedefs:
        c = model.conf.class_conf(td.name)
        if c is None or c.get('exclude') or td.is_outdated() or td.is_callback() or td.is_enum():
            continue
        struct = td.struct
        if struct is not None and struct.is_opaque() and struct.name:
            struct = model.find_struct(struct.name) or struct
        if struct is None or struct.is_opaque():
            unit['typedefs'].append({
                'name': c.get('name') or td.name,
                'native_name': td.name,
                'opaque': True,
                'visibility': c.get('visibility', 'public'),
                **_availability(td),
            })
        else:
            entry = _struct_entry(model, struct, td.name, c)
            entry['typedef'] = True
            unit['typedefs'].append(entry)


def _struct_entry(model: 'Model', struct, native_name: str, c: dict) -> dict:
    members = []
    for m in struct.members:
        mconf = c.get(m.name) or {}
        if not isinstance(mconf, dict) or mconf.get('exclude'):
            continue
        members.append({
            'name': mconf.get('name') or m.name,
            'native_name': m.name,
            'type': mconf.get('type') or model.to_target_type(model.resolve(m.type, True)),
        })
    return {
        'name': c.get('name') or native_name,
        'native_name': native_name,
        'union': struct.union,
        'opaque': False,
        'visibility': c.get('visibility', 'public'),
        'members': members,
        **_availability(struct),
    }


def export_functions(model: 'Model', unit: dict):
    for f in model.functions:
        if not _is_exported(model, f):
            continue
        fconf = model.conf.function_conf(f.name)
        if fconf is None or fconf.get('exclude'):
            continue
        owner = fconf.get('class') or _default_class(model)
        name = fconf.get('name') or f.name
        params_conf = fconf.get('parameters') or {}
        parameters = []
        for p in f.parameters:
            pconf = params_conf.get(p.name) or {}
            parameters.append({
                'name': pconf.get('name') or p.name,
                'type': pconf.get('type') or model.to_target_type(model.resolve(p.type)),
            })
        unit['functions'].setdefault(owner, []).append({
            'name': name[:1].lower() + name[1:],
            'symbol': f.name,
            'visibility': fconf.get('visibility', 'public'),
            'return_type': fconf.get('return_type') or model.to_target_type(model.resolve(f.return_type)),
            'parameters': parameters,
            **_availability(f),
        })


def export_values(model: 'Model', unit: dict):
    for v in model.global_values:
        if not _is_exported(model, v):
            continue
        vconf = model.conf.value_conf(v.name)
        if vconf is None or vconf.get('exclude'):
            continue
        owner = vconf.get('class') or _default_class(model)
        unit['values'].setdefault(owner, []).append({
            'name': vconf.get('name') or v.name,
            'symbol': v.name,
            'type': vconf.get('type') or model.to_target_type(model.resolve(v.type)),
            'readonly': v.is_const() or bool(vconf.get('readonly')),
            'visibility': vconf.get('visibility', 'public'),
            **_availability(v),
        })
    for group in model.global_value_enums.values():
        unit['value_enums'].append({
            'name': group.name,
            'type': group.target_type,
            'values': [v.name for v in group.values if _is_exported(model, v)],
        })
    for group in model.global_value_dictionaries.values():
        unit['value_dictionaries'].append({
            'name': group.name,
            'key_type': group.key_type,
            'extends': group.extends,
            'mutable': group.mutable,
            'keys': [v.name for v in group.values if _is_exported(model, v)],
        })


def export_constants(model: 'Model', unit: dict):
    for v in model.constant_values:
        vconf = model.conf.constant_conf(v.name)
        if vconf is None or vconf.get('exclude'):
            continue
        owner = vconf.get('class') or _default_class(model)
        unit['constants'].setdefault(owner, []).append({
            'name': vconf.get('name') or v.name,
            'native_name': v.name,
            'value': v.value,
            'type': vconf.get('type') or v.type,
            'visibility': vconf.get('visibility', 'public'),
        })


def _method_name(model: 'Model', method: ObjCMethod, mconf: dict, return_type: str) -> str:
    name = mconf.get('name')
    if name:
        return name
    name = method.name.replace(':', '$')
    returns_void = method.return_type is None or method.return_type.kind == 'void'
    if not method.parameters and not returns_void and mconf.get('property'):
        return getter_for_name(name, return_type)
    if method.name.startswith('set') and len(method.name) > 3 and len(method.parameters) == 1 and returns_void:
        return name.rstrip('$')
    if mconf.get('trim_after_first_colon'):
        return name.split('$', 1)[0]
    return name


def _method_entry(model: 'Model', owner: ObjCMemberHost, method: ObjCMethod, methods_conf: dict,
                  folded: bool = False) -> Optional[dict]:
    if not _is_exported(model, method):
        return None
    if method.is_variadic() or method.takes_va_list():
        logger.warning(f"Ignoring variadic method '{owner.name}.{method.name}' at {method.location}")
        return None
    mconf = model.conf.lookup(method.full_name, methods_conf) or {}
    if mconf.get('exclude'):
        return None
    params_conf = mconf.get('parameters') or {}
    parameters = []
    for p in method.parameters:
        pconf = params_conf.get(p.name) or {}
        parameters.append({
            'name': pconf.get('name') or p.name,
            'type': pconf.get('type') or model.to_target_type(model.resolve(p.type, False, owner, method)),
        })
    if method.is_init():
        return_type = '@Pointer long'
    else:
        return_type = mconf.get('return_type') or model.to_target_type(
            model.resolve(method.return_type, False, owner, method))
    if 'visibility' in mconf:
        visibility = mconf['visibility']
    elif isinstance(owner, ObjCClass):
        visibility = 'protected' if method.is_init() else 'public'
    elif isinstance(owner, ObjCCategory):
        visibility = 'public'
    else:
        visibility = ''
    return {
        'name': _method_name(model, method, mconf, return_type),
        'selector': method.name,
        'static': isinstance(method, ObjCClassMethod) or (isinstance(owner, ObjCCategory) and not folded),
        'visibility': visibility,
        'return_type': return_type,
        'parameters': parameters,
        **_availability(method),
    }


def _property_entry(model: 'Model', owner: ObjCMemberHost, prop: ObjCProperty, props_conf: dict) -> Optional[dict]:
    if not _is_exported(model, prop):
        return None
    pconf = model.conf.lookup(prop.name, props_conf) or {}
    if pconf.get('exclude'):
        return None
    name = pconf.get('name') or prop.name
    type_name = pconf.get('type') or model.to_target_type(model.resolve(prop.type, False, owner))
    omit_prefix = bool(pconf.get('omit_prefix'))
    return {
        'name': name,
        'type': type_name,
        'getter': pconf.get('getter') or getter_for_name(name, type_name, omit_prefix),
        'setter': None if prop.is_readonly() else setter_for_name(name, omit_prefix),
        'getter_selector': prop.getter_name,
        'setter_selector': None if prop.is_readonly() else prop.setter_name,
        **_availability(prop),
    }


def _members(model: 'Model', owner: ObjCMemberHost, c: dict, folded: bool = False) -> dict:
    methods = [_method_entry(model, owner, m, c.get('methods') or {}, folded) for m in owner.methods]
    properties = [_property_entry(model, owner, p, c.get('properties') or {}) for p in owner.properties]
    return {
        'methods': [m for m in methods if m is not None],
        'properties': [p for p in properties if p is not None],
    }


def _protocol_names(model: 'Model', names: list[str]) -> list[str]:
    result = []
    for name in names:
        pconf = model.conf.protocol_conf(name)
        if pconf is not None and not pconf.get('skip'):
            result.append(pconf.get('name') or name)
    return result


def export_objc(model: 'Model', unit: dict):
    classes = {}
    for cls in model.objc_classes:
        if cls.is_opaque():
            continue
        c = model.conf.class_conf(cls.name)
        if c is None or c.get('exclude') or cls.is_outdated():
            continue
        superclass = None
        if cls.superclass:
            superclass = (model.conf.tables['classes'].get(cls.superclass) or {}).get('name') or cls.superclass
        entry = {
            'name': c.get('name') or cls.target_name,
            'native_name': cls.name,
            'visibility': c.get('visibility', 'public'),
            'extends': c.get('extends') or superclass or 'ObjCObject',
            'implements': _protocol_names(model, cls.protocols),
            **_members(model, cls, c),
            **_availability(cls),
        }
        classes[cls.name] = entry
        unit['classes'].append(entry)

    for prot in model.objc_protocols:
        c = model.conf.protocol_conf(prot.name)
        if c is None or c.get('exclude') or prot.is_outdated() or prot.is_opaque():
            continue
        unit['protocols'].append({
            'name': c.get('name') or prot.target_name,
            'native_name': prot.name,
            'visibility': c.get('visibility', 'public'),
            'class': bool(c.get('class')),
            'extends': _protocol_names(model, prot.protocols) or ['NSObjectProtocol'],
            **_members(model, prot, c),
            **_availability(prot),
        })

    for cat in model.objc_categories:
        c = model.conf.category_conf(f'{cat.name}@{cat.owner}') or model.conf.category_conf(cat.name)
        if c is not None and c.get('exclude'):
            continue
        owner = classes.get(cat.owner)
        if owner is not None and model.is_included(cat):
            # Categories on classes of this unit are folded into the class
            members = _members(model, cat, c or {}, folded=True)
            owner['methods'].extend(members['methods'])
            owner['properties'].extend(members['properties'])
            owner['implements'].extend(_protocol_names(model, cat.protocols))
        elif c is not None and not cat.is_outdated():
            unit['categories'].append({
                'name': c.get('name') or cat.target_name,
                'native_name': cat.name,
                'owner': cat.owner,
                'visibility': c.get('visibility', 'public final'),
                **_members(model, cat, c),
            })
        elif model.is_included(cat):
            logger.warning(f'Skipping category {cat.name} for {cat.owner} at {cat.location}')


def export_unit(model: 'Model') -> dict:
    """Collect the exported entities of a processed model"""
    unit = {
        'framework': model.conf.framework,
        'enums': [],
        'structs': [],
        'typedefs': [],
        'classes': [],
        'protocols': [],
        'categories': [],
        'functions': {},
        'values': {},
        'value_enums': [],
        'value_dictionaries': [],
        'constants': {},
    }
    export_enums(model, unit)
    export_structs(model, unit)
    export_functions(model, unit)
    export_values(model, unit)
    export_constants(model, unit)
    export_objc(model, unit)
    return unit
