"""
Shell helper functions appended to the user's profile.

``{elevated_programs}`` and ``{autoload}`` are filled in at render
time; every other brace in the template is shell syntax and is left
untouched.
"""

from __future__ import annotations

HELPER_MARKER = "# PHP Helper Functions"

# Definition whose presence proves the block landed in the profile.
HELPER_PROBE = "function php_switch()"

HELPER_FUNCTIONS = ("php_switch", "php_project", "php_service", "php_extension")

HELPER_TEMPLATE = r"""
# PHP Helper Functions
# -------------------

# Check if command needs sudo
needs_sudo() {
    local cmd=$1
    case $cmd in
        {elevated_programs})
            return 0
            ;;
        *)
            return 1
            ;;
    esac
}

# Run command with sudo if needed
run_cmd() {
    local cmd=$1
    shift
    if needs_sudo "$cmd"; then
        sudo "$cmd" "$@"
    else
        "$cmd" "$@"
    fi
}

# PHP version switcher
function php_switch() {
    if [ -z "$1" ]; then
        echo "Usage: php_switch <version> (e.g. 8.2)"
        return 1
    fi
    run_cmd update-alternatives --set php /usr/bin/php$1 && php -v
}

# Create PHP framework project
function php_project() {
    case "$1" in
        laravel)
            laravel new my-laravel-app
            ;;
        cakephp)
            composer create-project --prefer-dist cakephp/app my-cake-app
            ;;
        symfony)
            symfony new my-symfony-app --webapp
            ;;
        *)
            echo "Usage: php_project <laravel|cakephp|symfony>"
            return 1
            ;;
    esac
}

# PHP service management
function php_service() {
    local action=$1
    local version=$2

    if [ -z "$action" ] || [ -z "$version" ]; then
        echo "Usage: php_service <start|stop|restart|status> <version>"
        return 1
    fi

    run_cmd systemctl $action php$version-fpm
}

# PHP extension management
function php_extension() {
    local action=$1
    local version=$2
    local extension=$3

    if [ -z "$action" ] || [ -z "$version" ] || [ -z "$extension" ]; then
        echo "Usage: php_extension <install|remove> <version> <extension>"
        return 1
    fi

    run_cmd apt $action php$version-$extension
    run_cmd systemctl restart php$version-fpm
}
{autoload}"""

ZSH_AUTOLOAD = "\n# Make functions available\nautoload -Uz " + " ".join(HELPER_FUNCTIONS) + "\n"
