# gitpuller/vars.py
# $name$ expansion for command templates


def substitute(template: str, variables) -> str:
    """
    Replace every `$name$` in template with variables[name].

    Variables are applied one after the other in mapping order, so a value
    that itself contains `$other$` gets expanded again if `other` comes later:
        substitute("$a$", {"a": "$b$", "b": "X"}) == "X"
    """
    for name, value in variables.items():
        template = template.replace(f"${name}$", str(value))
    return template
