from .step_00_check_privileges import CheckPrivilegesStep
from .step_10_install_packages import InstallPackagesStep
from .step_20_install_nodejs import InstallNodeStep
from .step_30_create_service_user import CreateServiceUserStep
from .step_40_deploy_project import DeployProjectStep
from .step_50_configure_nginx import ConfigureNginxStep
from .step_60_create_display_service import CreateDisplayServiceStep
from .step_70_configure_display_manager import ConfigureDisplayManagerStep
from .step_80_install_management_scripts import InstallManagementScriptsStep
from .step_90_finalize import FinalizeStep

__all__ = [
    "CheckPrivilegesStep",
    "InstallPackagesStep",
    "InstallNodeStep",
    "CreateServiceUserStep",
    "DeployProjectStep",
    "ConfigureNginxStep",
    "CreateDisplayServiceStep",
    "ConfigureDisplayManagerStep",
    "InstallManagementScriptsStep",
    "FinalizeStep",
]
