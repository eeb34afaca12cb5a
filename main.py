#!/usr/bin/env python3
"""
水表红外管理工具 - 主程序入口
============================

通过红外M-Bus接口读写水表参数的交互式入口。
非交互使用请调用 python -m em_admin。

使用方法：
    python main.py              # 交互式菜单
    python main.py --help       # 显示帮助信息
"""

import sys
import argparse
from pathlib import Path
from typing import Optional

# 添加src路径到Python路径
sys.path.insert(0, str(Path(__file__).parent / "src"))

from em_admin.cli.meter_cli import MeterCLI
from em_admin.config.constants import COMMAND_NAMES
from em_admin.core.serial_manager import SerialManager
from em_admin.utils.logger import get_logger

logger = get_logger(__name__)

# 版本信息
VERSION = "1.0.0"
PROGRAM_NAME = "水表红外管理工具"

COMMAND_DESCRIPTIONS = {
    "read_info": "📖 读取设备信息",
    "get_params": "⚙️  读取无线参数",
    "set_params": "📝 写入无线参数",
    "set_time": "🕒 同步设备时间",
    "set_keyday": "📅 设置结算日",
    "read_months": "📊 读取月度读数",
    "read_highres": "💧 读取高精度计数",
    "set_aes": "🔑 写入AES密钥（未经测试）",
}


class MeterAdminApp:
    """水表红外管理工具主应用类"""

    def __init__(self):
        """初始化应用"""
        self.running = True
        self.port: Optional[str] = None

    def show_banner(self):
        """显示程序横幅"""
        print("=" * 50)
        print(f"{PROGRAM_NAME} v{VERSION}")
        print("=" * 50)
        print("通过红外M-Bus接口读写水表参数")
        print("=" * 50)
        print()

    def show_menu(self):
        """显示主菜单"""
        print(f"当前串口: {self.port or '未选择'}")
        print("请选择操作：")
        print("0. 🔌 选择串口")
        for index, command in enumerate(COMMAND_NAMES, start=1):
            print(f"{index}. {COMMAND_DESCRIPTIONS[command]}")
        print("9. 查看帮助")
        print("q. 退出程序")
        print()

    def show_help(self):
        """显示帮助信息"""
        print("\n" + "=" * 50)
        print("帮助信息")
        print("=" * 50)
        print()
        print("🔧 使用步骤：")
        print("   1. 将红外读头对准水表光学接口")
        print("   2. 选择读头所在的串口")
        print("   3. 选择要执行的操作")
        print()
        print("⚠️  注意：")
        print("   - 发送间隔过短会提前耗尽电池")
        print("   - 红外读取同样耗电，不要频繁读取")
        print("   - 写入AES密钥未经测试，仅命令行可用")
        print()
        print("=" * 50)
        input("按回车键返回主菜单...")
        print()

    def get_user_choice(self) -> str:
        """获取用户选择"""
        valid = [str(i) for i in range(10)] + ["q"]
        while True:
            try:
                choice = input("请输入选择 (0-9, q): ").strip().lower()
                if choice in valid:
                    return choice
                else:
                    print("❌ 无效选择，请输入 0-9 或 q")
            except KeyboardInterrupt:
                print("\n\n👋 用户取消操作，程序退出")
                return "q"
            except EOFError:
                return "q"

    def select_port(self) -> Optional[str]:
        """交互选择串口"""
        ports = SerialManager.list_available_ports()
        if not ports:
            print("❌ 没有找到可用的串口")
            return None

        for index, port in enumerate(ports, start=1):
            print(f"{index}. {port['device']} - {port['description']}")

        choice = input(f"请选择串口 (1-{len(ports)}): ").strip()
        try:
            return ports[int(choice) - 1]["device"]
        except (ValueError, IndexError):
            print("❌ 无效选择")
            return None

    def handle_command(self, command: str):
        """执行单个命令"""
        if command == "set_aes":
            print("\n⚠️  写入AES密钥未经测试，请使用命令行并加 --confirm-aes")
            return

        if not self.port:
            self.port = self.select_port()
            if not self.port:
                return

        try:
            print("\n" + "=" * 30)
            print(COMMAND_DESCRIPTIONS[command])
            print("=" * 30)
            code = MeterCLI.run(self.port, command)
            if code == 0:
                print("\n✅ 操作完成！")
            else:
                print(f"\n❌ 操作失败，错误码 {code}")
        except Exception as e:
            logger.error(f"操作异常: {e}")
            print(f"\n💥 操作异常: {e}")
        finally:
            print()

    def run_interactive(self):
        """运行交互式界面"""
        self.show_banner()

        while self.running:
            self.show_menu()
            choice = self.get_user_choice()

            if choice == "0":
                self.port = self.select_port() or self.port
            elif choice == "9":
                self.show_help()
            elif choice == "q":
                print("\n👋 感谢使用，程序退出！")
                self.running = False
            else:
                self.handle_command(COMMAND_NAMES[int(choice) - 1])

        print()


def create_parser():
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        description=f"{PROGRAM_NAME} v{VERSION}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用示例：
  python main.py              # 启动交互式界面
  python -m em_admin --help   # 命令行模式帮助
        """,
    )

    parser.add_argument(
        "--version", action="version", version=f"{PROGRAM_NAME} v{VERSION}"
    )

    return parser


def main():
    """主函数"""
    try:
        parser = create_parser()
        parser.parse_args()

        app = MeterAdminApp()
        app.run_interactive()

    except KeyboardInterrupt:
        print("\n\n👋 用户中断程序，退出")
    except Exception as e:
        logger.error(f"程序异常: {e}")
        print(f"\n💥 程序异常: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
